"""Key-value store port and its implementations.

The orchestrator only ever calls get / set / delete. Values are bytes; the
repository layer owns the JSON encoding.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import (
    Column,
    Float,
    LargeBinary,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from season_forecast.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract string-keyed blob store."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the stored value or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Create or overwrite a value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        pass


class MemoryStore(KeyValueStore):
    """Process-local store, used by tests and ``memory://``."""

    def __init__(self):
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    # SQLite-specific settings: one shared connection across threads
    return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}


metadata = MetaData()

kv_store = Table(
    "kv_store",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", LargeBinary, nullable=False),
    Column("updated_at", Float, nullable=False),
)


class SqlStore(KeyValueStore):
    """Store backed by one ``kv_store`` table through SQLAlchemy Core."""

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[Engine] = None,
        clock: Optional[Clock] = None,
    ):
        if engine is None and not url:
            raise ValueError("SqlStore needs a database URL or an engine")
        self.engine = engine or create_engine(url, **_engine_kwargs(url))
        self.clock = clock or SystemClock()
        metadata.create_all(self.engine)

    def get(self, key: str) -> Optional[bytes]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(kv_store.c.value).where(kv_store.c.key == key)
            ).first()
        return bytes(row[0]) if row else None

    def set(self, key: str, value: bytes) -> None:
        now = self.clock.time()
        with self.engine.begin() as conn:
            result = conn.execute(
                update(kv_store)
                .where(kv_store.c.key == key)
                .values(value=value, updated_at=now)
            )
            if result.rowcount == 0:
                conn.execute(insert(kv_store).values(key=key, value=value, updated_at=now))

    def delete(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(kv_store).where(kv_store.c.key == key))

    def close(self) -> None:
        self.engine.dispose()


def build_store(url: str, clock: Optional[Clock] = None) -> KeyValueStore:
    """Store for a configured URL: ``memory://`` or any SQLAlchemy URL."""
    if url.startswith("memory://"):
        logger.info("[STORE] Using in-memory store")
        return MemoryStore()
    logger.info(f"[STORE] Using SQL store ({url.split('://', 1)[0]})")
    return SqlStore(url=url, clock=clock)
