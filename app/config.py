"""Application configuration pulled from environment variables via pydantic."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the ConnectO discovery service."""
    model_config = SettingsConfigDict(env_prefix="CONNECTO_", extra="ignore")

    # API access
    api_key: str | None = None
    api_key_redis_url: str | None = None
    api_key_redis_set: str = "api_keys"

    # Key-value store (last known location, permission flag, cooldowns)
    store_redis_url: str | None = None
    store_prefix: str = "connecto:"

    # Reverse geocoding
    reverse_geocoders: str = "google,gazetteer"  # ordered, comma separated
    google_maps_api_key: str | None = None
    geocoding_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    geocoding_timeout_seconds: float = 10.0
    geocoding_retries: int = 3
    geocoding_cache_name: str = "geocoding_cache"
    geocoding_cache_backend: str = "sqlite"  # any requests-cache backend name
    geocoding_cache_ttl_seconds: int = 3600
    gazetteer_max_distance_km: float = 50.0

    # Location defaults
    default_city: str = "mumbai"
    default_country: str = "India"
    nearby_radius_km: float = Field(default=5.0, gt=0)
    device_latitude: float | None = None
    device_longitude: float | None = None
    device_permission_granted: bool = True

    # Notify worker
    notify_cooldown_seconds: int = Field(default=300, gt=0)
    notify_max_per_hour: int = 10
    notify_history_per_customer: int = Field(default=50, gt=0)
    notify_webhook_url: str | None = None
    notify_timeout_seconds: float = 10.0

    # Worker directory
    worker_source: str = "memory"  # options: memory, json, sql
    workers_file: str | None = None
    workers_database_url: str | None = None
    workers_table: str = "workers"

    @field_validator("geocoding_url", "notify_webhook_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize base URLs to avoid double slashes."""
        if v is None:
            return v
        return str(v).rstrip("/")

    @field_validator("default_city", "worker_source", mode="after")
    @classmethod
    def lowercase(cls, v: str) -> str:
        """Names are matched case-insensitively."""
        return v.strip().lower()


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
