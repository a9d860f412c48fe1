"""
Fixture fetching with caching, in-flight deduplication and bounded waits.

Lookups go: store blob (age-checked) -> one shared upstream request per key.
Concurrent callers asking for the same (league, matchday) share one request;
each caller waits at most ``fetch_timeout`` seconds and gets UpstreamTimeout
when it expires. The shared request keeps running and fills the cache for the
next caller.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from season_forecast.config import get_settings
from season_forecast.errors import UpstreamTimeout
from season_forecast.etl.base import DataSource
from season_forecast.models import SCHEDULED_STATUSES, LeagueData, Match
from season_forecast.storage import keys
from season_forecast.storage.repository import ForecastRepository
from season_forecast.telemetry import record_fixture_cache
from season_forecast.utils.cache import TTLCache
from season_forecast.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


def presentable_matches(matches: Iterable[Match], now, completed_match_ids: Iterable[int] = ()) -> list[Match]:
    """
    Fixtures a user can still predict: scheduled, kicking off after ``now``
    and not already predicted under another matchday (rescheduled games).
    """
    done = set(completed_match_ids)
    return sorted(
        (
            m for m in matches
            if m.status in SCHEDULED_STATUSES
            and m.utc_date > now
            and m.id not in done
        ),
        key=lambda m: (m.utc_date, m.id),
    )


class FixtureFetcher:
    """Cached, deduplicated access to a DataSource."""

    def __init__(
        self,
        source: DataSource,
        repository: ForecastRepository,
        clock: Optional[Clock] = None,
        fixture_ttl: Optional[float] = None,
        league_ttl: Optional[float] = None,
        results_ttl: Optional[float] = None,
        fetch_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.source = source
        self.repository = repository
        self.clock = clock or SystemClock()
        self.fixture_ttl = settings.FIXTURE_CACHE_TTL_SECONDS if fixture_ttl is None else fixture_ttl
        self.league_ttl = settings.LEAGUE_DATA_TTL_SECONDS if league_ttl is None else league_ttl
        self.fetch_timeout = settings.FETCH_TIMEOUT_SECONDS if fetch_timeout is None else fetch_timeout
        self._league_cache = TTLCache(ttl=self.league_ttl, clock=self.clock)
        self._results_cache = TTLCache(
            ttl=settings.RESULTS_CACHE_TTL_SECONDS if results_ttl is None else results_ttl,
            clock=self.clock,
        )
        self._inflight: dict[str, asyncio.Task] = {}

    # --- dedup ---

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome retrieved; every waiter may have timed out already
        if not task.cancelled():
            task.exception()

    async def _shared(self, key: str, factory: Callable[[], Awaitable]):
        """Run ``factory`` once per key at a time and wait for it with a bound."""
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            record_fixture_cache("dedup")
            logger.debug(f"[FETCH] Joining in-flight request for {key}")

        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[FETCH] {key} did not complete within {self.fetch_timeout}s")
            raise UpstreamTimeout(f"Fetching {key} timed out after {self.fetch_timeout}s") from None

    def in_flight(self) -> list[str]:
        return sorted(self._inflight)

    # --- fixtures ---

    async def get_matches(self, league: str, matchday: int) -> list[Match]:
        """Every fixture of a matchday, from the store when fresh enough."""
        key = keys.fixtures_key(league, matchday)
        age = self.repository.cache_age(key)
        if age is not None and age >= self.fixture_ttl:
            record_fixture_cache("stale")
        cached = self.repository.get_fixtures(league, matchday, ttl=self.fixture_ttl)
        if cached is not None:
            record_fixture_cache("hit")
            return cached

        record_fixture_cache("miss")

        async def fetch() -> list[Match]:
            matches = await self.source.get_matches(league, matchday)
            self.repository.save_fixtures(league, matchday, matches)
            return matches

        return await self._shared(key, fetch)

    # --- league data ---

    async def get_league_data(self, league: str) -> LeagueData:
        """Official table and current matchday: memory, then store, then upstream."""
        code = league.upper()
        hit, data = self._league_cache.get(code)
        if hit:
            return data

        stored = self.repository.get_league_data(code, ttl=self.league_ttl)
        if stored is not None:
            self._league_cache.set(code, stored)
            return stored

        async def fetch() -> LeagueData:
            fetched = await self.source.get_league_data(code)
            fetched = LeagueData(
                standings=fetched.standings,
                current_matchday=fetched.current_matchday,
                fetched_at=self.clock.time(),
                source="api",
            )
            self.repository.save_league_data(code, fetched)
            self._league_cache.set(code, fetched)
            return fetched

        return await self._shared(keys.league_data_key(code), fetch)

    async def refresh_league(self, league: str) -> LeagueData:
        """Drop cached league data and fetch it again."""
        code = league.upper()
        self._league_cache.invalidate(code)
        self.repository.invalidate_league_data(code)
        logger.info(f"[FETCH] {code}: league data invalidated, refetching")
        return await self.get_league_data(code)

    # --- real results ---

    async def get_finished_matches(self, league: str, through_matchday: int) -> list[Match]:
        code = league.upper()
        cache_key = f"{code}:finished:{through_matchday}"
        hit, data = self._results_cache.get(cache_key)
        if hit:
            return data

        async def fetch() -> list[Match]:
            matches = await self.source.get_finished_matches(code, through_matchday)
            self._results_cache.set(cache_key, matches)
            return matches

        return await self._shared(cache_key, fetch)

    # --- status ---

    def cache_status(self, league: str, max_matchday: int) -> dict:
        """Which cached blobs exist for a league, their age and whether they are stale."""
        code = league.upper()

        def describe(age: Optional[float], ttl: float) -> dict:
            return {"age_seconds": round(age, 1), "stale": age >= ttl}

        league_age = self.repository.cache_age(keys.league_data_key(code))
        fixtures = {}
        for matchday in range(1, max_matchday + 1):
            age = self.repository.cache_age(keys.fixtures_key(code, matchday))
            if age is not None:
                fixtures[matchday] = describe(age, self.fixture_ttl)

        return {
            "league": code,
            "league_data": describe(league_age, self.league_ttl) if league_age is not None else None,
            "fixtures": fixtures,
            "in_flight": [k for k in self.in_flight() if k.startswith(code)],
        }
