"""Configuration settings for the application."""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Trip planner (OpenTripPlanner); unset means heuristic transit routing only
    otp_base_url: Optional[str] = None
    otp_timeout: float = 3.0

    # Overpass API mirrors, tried in order
    overpass_endpoints: List[str] = [
        "https://overpass-api.de/api/interpreter",
        "https://overpass.kumi.systems/api/interpreter",
        "https://overpass.openstreetmap.ru/api/interpreter",
    ]
    overpass_timeout: float = 3.0
    overpass_retries_per_endpoint: int = 3
    poi_limit_per_category: int = 20

    # Open-Meteo forecast
    weather_api_url: str = "https://api.open-meteo.com/v1/forecast"
    weather_timeout: float = 5.0

    # Used when the user's location cannot be resolved (Bucharest)
    default_center_lat: float = 44.4268
    default_center_lon: float = 26.1025
    location_timeout: float = 8.0

    # Caller-side watchdog around plan generation (seconds)
    generation_timeout: float = 5.0

    distance_cache_size: int = 1000

    # FastAPI Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True

    # CORS Configuration
    frontend_url: str = "http://localhost:8081"

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
