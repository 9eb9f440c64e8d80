"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./servicehub.db"

    # Redis
    redis_url: str = "redis://localhost:6379"
    geocode_cache_ttl_seconds: int = 86400  # 24 hours

    # Geofence
    max_range_meters: int = 500
    position_high_accuracy: bool = True
    position_timeout_ms: int = 15000
    position_max_staleness_ms: int = 0  # never accept a cached fix
    on_duplicate_check_in: Literal["reject", "replace"] = "reject"

    # Google Maps
    google_maps_api_key: str = ""  # Takes precedence over maps_key_url
    maps_key_url: str = ""  # Server function returning {"apiKey": "..."}
    maps_key_ttl_seconds: int = 3600
    google_geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json"

    # Chat
    message_language: str = "it"

    # Logging
    log_level: str = "INFO"

    # Server
    port: int = 10000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
