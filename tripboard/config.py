"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None
    sql_echo: bool = False

    # Logging
    log_level: str = "INFO"

    # Default start times for derived accommodation items (HH:MM)
    checkin_time: str = "15:00"
    checkout_time: str = "11:00"

    # Longest itinerary accepted, in days
    max_trip_days: int = 90

    # HTTP client
    client_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
