from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./roomcal.db",
        alias="DATABASE_URL"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # CORS - Frontend URLs from environment (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        alias="ALLOWED_ORIGINS"
    )

    # ==============================================
    # iCal feed settings
    # ==============================================
    # HTTP timeout for fetching external calendars
    ical_fetch_timeout_seconds: int = Field(default=20, alias="ICAL_FETCH_TIMEOUT_SECONDS")
    ical_user_agent: str = Field(default="RoomCal Calendar Sync/1.0", alias="ICAL_USER_AGENT")

    # Outbound feed identity
    ical_prodid: str = Field(default="-//RoomCal//Booking System//EN", alias="ICAL_PRODID")
    ical_uid_domain: str = Field(default="roomcal.local", alias="ICAL_UID_DOMAIN")

    # ==============================================
    # Sync settings
    # ==============================================
    # Parallel jobs for "sync all"
    sync_max_workers: int = Field(default=4, alias="SYNC_MAX_WORKERS")

    # Scheduler (runs inside FastAPI process)
    sync_scheduler_enabled: bool = Field(default=True, alias="SYNC_SCHEDULER_ENABLED")
    sync_cron_minute: str = Field(default="0", alias="SYNC_CRON_MINUTE")  # hourly at :00
    sync_log_retention_days: int = Field(default=30, alias="SYNC_LOG_RETENTION_DAYS")

    # ==============================================
    # Availability policy
    # ==============================================
    # Whether unpaid (pending) bookings hold their dates
    pending_bookings_hold_dates: bool = Field(default=False, alias="PENDING_BOOKINGS_HOLD_DATES")

    # Default window for the customer-facing calendar
    availability_default_months: int = Field(default=3, alias="AVAILABILITY_DEFAULT_MONTHS")

    @field_validator('sync_max_workers')
    @classmethod
    def validate_sync_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("SYNC_MAX_WORKERS must be at least 1")
        return v

    @field_validator('availability_default_months')
    @classmethod
    def validate_default_months(cls, v: int) -> int:
        if v < 1 or v > 12:
            raise ValueError("AVAILABILITY_DEFAULT_MONTHS must be between 1 and 12")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        if not self.allowed_origins:
            return ["http://localhost:5173"]

        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")  # Remove trailing slashes
            if origin and origin not in origins:
                origins.append(origin)

        return origins if origins else ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
