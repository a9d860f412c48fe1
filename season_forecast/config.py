"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # football-data.org (v4)
    FOOTBALL_DATA_API_KEY: str = ""
    FOOTBALL_DATA_BASE_URL: str = "https://api.football-data.org/v4"

    # Rate Limiting (free tier: 10 r/m)
    API_REQUESTS_PER_MINUTE: int = 10  # 0 = no spacing between requests
    API_MAX_RETRIES: int = 3
    API_RETRY_BASE_SECONDS: float = 5.0  # Exponential backoff base (429 / 5xx / timeout)
    API_TIMEOUT_SECONDS: float = 10.0  # Per HTTP request

    # Fixture fetching
    FETCH_TIMEOUT_SECONDS: float = 30.0  # Bounded wait for one deduplicated fetch
    MATCHDAY_LOOKAHEAD: int = 3  # Matchdays tried when a matchday has no fixtures

    # Cache ages (seconds)
    FIXTURE_CACHE_TTL_SECONDS: int = 600
    LEAGUE_DATA_TTL_SECONDS: int = 600
    RESULTS_CACHE_TTL_SECONDS: int = 86400  # Finished results rarely change

    # Simulation
    DEFAULT_AUTO_POLICY: str = "auto-by-position"  # "auto-by-position" | "force-draw"

    # Persistent store (SQLAlchemy URL, or "memory://" for the in-process store)
    STORE_URL: str = "sqlite:///./season_forecast.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
