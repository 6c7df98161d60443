import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.config import settings
from src.exceptions import FareSettlementError
from src.logging_utils import configure_logging
from src.gates import router as gates_router
from src.payments import router as payments_router
from src.routes import router as routes_router
from src.stations import router as stations_router
from src.users import router as users_router

configure_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Metro fare settlement API",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Rider app dev servers
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(FareSettlementError)
async def fare_settlement_error_handler(request: Request, exc: FareSettlementError):
    """Render ledger, routing and gate errors with their status and code"""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()}
    )

# Include routers
app.include_router(
    users_router,
    prefix=f"{settings.API_V1_STR}/users",
    tags=["Riders"]
)

app.include_router(
    gates_router,
    prefix=f"{settings.API_V1_STR}/gates",
    tags=["Gates"]
)

app.include_router(
    payments_router,
    prefix=f"{settings.API_V1_STR}/payments",
    tags=["Payments"]
)

app.include_router(
    stations_router,
    prefix=f"{settings.API_V1_STR}/stations",
    tags=["Stations"]
)

app.include_router(
    routes_router,
    prefix=f"{settings.API_V1_STR}/routes",
    tags=["Route Planning"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Metro Fare Settlement API",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
