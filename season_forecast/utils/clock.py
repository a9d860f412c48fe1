"""Injectable clocks.

Everything that compares against "now" (upcoming fixtures, cache age) takes a
clock so tests can pin time.
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Protocol for clocks passed to fetchers, stores and sessions."""

    def now(self) -> datetime:
        ...

    def time(self) -> float:
        ...


class SystemClock:
    """Wall clock (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def time(self) -> float:
        return time.time()


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self._at = at

    def now(self) -> datetime:
        return self._at

    def time(self) -> float:
        return self._at.timestamp()

    def advance(self, seconds: float) -> None:
        self._at = self._at + timedelta(seconds=seconds)
