"""Storage module - key-value store port, key scheme and typed blobs."""

from season_forecast.storage.repository import ForecastRepository, SessionState
from season_forecast.storage.store import KeyValueStore, MemoryStore, SqlStore, build_store

__all__ = [
    "ForecastRepository",
    "SessionState",
    "KeyValueStore",
    "MemoryStore",
    "SqlStore",
    "build_store",
]
