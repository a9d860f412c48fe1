"""Keyed TTL cache for in-process league data.

Usage:
    _cache = TTLCache(ttl=600, clock=clock)

    # Read
    hit, data = _cache.get("PL")
    if hit:
        return data

    # Write
    _cache.set("PL", data)

    # Invalidate one key / everything
    _cache.invalidate("PL")
    _cache.invalidate()
"""

from typing import Optional

from season_forecast.utils.clock import Clock, SystemClock


class TTLCache:
    """TTL-based cache keyed by string, reading time from an injected clock."""

    __slots__ = ("ttl", "clock", "_entries")

    def __init__(self, ttl: float, clock: Optional[Clock] = None):
        self.ttl = ttl
        self.clock = clock or SystemClock()
        self._entries: dict[str, tuple[float, object]] = {}

    def get(self, key: str) -> tuple[bool, object]:
        """Return (hit, data). Expired entries are dropped."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        timestamp, data = entry
        if self.clock.time() - timestamp >= self.ttl:
            del self._entries[key]
            return False, None
        return True, data

    def set(self, key: str, data: object) -> None:
        """Store data with current timestamp."""
        self._entries[key] = (self.clock.time(), data)

    def invalidate(self, key: Optional[str] = None) -> None:
        """Clear one key, or every key when none is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def age(self, key: str) -> "float | None":
        """Seconds since the key was set, or None if absent."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self.clock.time() - entry[0]
