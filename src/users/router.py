from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.auth.dependencies import get_current_user
from src.database import get_db
from src.models import User
from src.routes.service import get_route_graph
from src.stations.schemas import NearestStationsResponse
from src.stations.service import StationService
from src.trips.ledger import TripLedger
from src.trips.schemas import BalanceResponse, StartTripRequest, StartTripResponse
from src.trips.stores import LedgerStores

router = APIRouter()

@router.post("/trips/start", response_model=StartTripResponse)
def start_trip(
    request: StartTripRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Issue a short-lived access key for the rider's party"""
    ledger = TripLedger(db)
    return ledger.start_trip(current_user.id, request.number_of_clients)

@router.get("/me/balance", response_model=BalanceResponse)
def get_balance(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Available and held balance, and the open trip if there is one"""
    stores = LedgerStores(db)
    balance = stores.accounts.get_balance(current_user.id)
    open_trip = stores.trips.find_open_trip_for_rider(current_user.id)

    return BalanceResponse(
        user_id=current_user.id,
        available_balance=balance.available,
        holding_balance=balance.holding,
        active_trip_id=open_trip.id if open_trip else None
    )

@router.get("/nearest-stations", response_model=NearestStationsResponse)
def get_nearest_stations(
    start_lat: float = Query(..., ge=-90, le=90),
    start_long: float = Query(..., ge=-180, le=180),
    arrival_lat: float = Query(..., ge=-90, le=90),
    arrival_long: float = Query(..., ge=-180, le=180),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Nearest stations to a start and arrival point and the route between them"""
    return StationService.find_nearest_stations(
        db, get_route_graph(), start_lat, start_long, arrival_lat, arrival_long
    )
