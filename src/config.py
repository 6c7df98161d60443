from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: str = "localhost"
    PGDATABASE: str = "metro"
    PGUSER: str = "postgres"
    PGPASSWORD: str = ""
    PGSSLMODE: str = "require"

    # Rider authentication
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Trip access keys
    TRIP_KEY_SECRET: str = "default-secret-key-change-in-production"
    TRIP_KEY_SALT: str = "salt"
    ACCESS_KEY_TTL_SECONDS: int = 300
    ACCESS_KEY_SINGLE_USE: bool = False

    # Gates and payment provider
    STATION_AUTH_TOKEN: Optional[str] = None
    WEBHOOK_SECRET: Optional[str] = None

    # Application
    PROJECT_NAME: str = "Metro Fare Settlement"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
