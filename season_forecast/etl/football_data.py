"""football-data.org (v4) data source implementation."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

import httpx

from season_forecast.config import get_settings
from season_forecast.errors import (
    DataSourceError,
    NotFound,
    RateLimited,
    UpstreamServerError,
    UpstreamTimeout,
)
from season_forecast.etl.base import DataSource
from season_forecast.leagues import LEAGUES
from season_forecast.models import SCHEDULED_STATUSES, Match, Standing, Team
from season_forecast.telemetry import record_provider_error, record_provider_request
from season_forecast.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

PROVIDER = "football_data"


def _parse_datetime(value: str) -> datetime:
    """ISO-8601 from the API ("2025-08-16T14:00:00Z") as an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_team(team: dict) -> Team:
    return Team(
        id=int(team["id"]),
        name=team.get("name") or "",
        short_name=team.get("shortName") or "",
        tla=team.get("tla") or "",
        crest=team.get("crest"),
    )


class FootballDataProvider(DataSource):
    """football-data.org client with request spacing, retries and telemetry."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        requests_per_minute: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_base_seconds: Optional[float] = None,
        timeout: Optional[float] = None,
        clock: Optional[Clock] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.FOOTBALL_DATA_BASE_URL).rstrip("/")
        self.requests_per_minute = (
            settings.API_REQUESTS_PER_MINUTE if requests_per_minute is None else requests_per_minute
        )
        self.max_retries = max(1, settings.API_MAX_RETRIES if max_retries is None else max_retries)
        self.retry_base_seconds = (
            settings.API_RETRY_BASE_SECONDS if retry_base_seconds is None else retry_base_seconds
        )
        self.clock = clock or SystemClock()
        self.client = httpx.AsyncClient(
            headers={"X-Auth-Token": api_key if api_key is not None else settings.FOOTBALL_DATA_API_KEY},
            timeout=settings.API_TIMEOUT_SECONDS if timeout is None else timeout,
            transport=transport,
        )

    async def _rate_limited_request(self, endpoint: str, params: dict = None, entity: str = "matches") -> dict:
        """
        Make a rate-limited request to the API.

        Spaces successful requests to respect the per-minute quota and backs
        off exponentially on 429, 5xx, timeouts and transport errors.

        Args:
            endpoint: Path below the base URL.
            params: Query parameters.
            entity: Entity label for telemetry ("standings", "matches").

        Raises:
            NotFound: 404, not retried.
            RateLimited / UpstreamServerError / UpstreamTimeout: retries exhausted.
            DataSourceError: Any other 4xx (bad token, forbidden competition).
        """
        delay = 60 / self.requests_per_minute if self.requests_per_minute > 0 else 0
        url = f"{self.base_url}/{endpoint}"
        last_error: Optional[DataSourceError] = None

        for attempt in range(self.max_retries):
            wait_time = self.retry_base_seconds * (2**attempt)
            is_last = attempt == self.max_retries - 1
            start_time = time.time()
            try:
                response = await self.client.get(url, params=params)
            except httpx.TimeoutException as e:
                latency_ms = (time.time() - start_time) * 1000
                record_provider_request(PROVIDER, entity, 0, latency_ms)
                record_provider_error(PROVIDER, entity, "timeout")
                logger.error(f"[FETCH] Timeout on {endpoint} (attempt {attempt + 1}/{self.max_retries}): {e}")
                last_error = UpstreamTimeout(f"Timeout requesting {endpoint}")
                if not is_last:
                    await asyncio.sleep(wait_time)
                continue
            except httpx.RequestError as e:
                latency_ms = (time.time() - start_time) * 1000
                record_provider_request(PROVIDER, entity, 0, latency_ms)
                record_provider_error(PROVIDER, entity, "request_error")
                logger.error(f"[FETCH] Request error on {endpoint}: {e}")
                last_error = UpstreamServerError(f"Request to {endpoint} failed: {e}")
                if not is_last:
                    await asyncio.sleep(wait_time)
                continue

            latency_ms = (time.time() - start_time) * 1000
            status = response.status_code

            if status == 429:
                record_provider_request(PROVIDER, entity, 429, latency_ms, is_rate_limited=True)
                record_provider_error(PROVIDER, entity, "rate_limit")
                retry_after = response.headers.get("Retry-After") or response.headers.get("X-RequestCounter-Reset")
                try:
                    retry_after = float(retry_after) if retry_after is not None else None
                except ValueError:
                    retry_after = None
                last_error = RateLimited(f"Rate limited on {endpoint}", retry_after=retry_after)
                if not is_last:
                    logger.warning(f"[FETCH] Rate limited. Waiting {wait_time}s before retry...")
                    await asyncio.sleep(wait_time)
                continue

            record_provider_request(PROVIDER, entity, status, latency_ms)

            if status == 404:
                record_provider_error(PROVIDER, entity, "not_found")
                raise NotFound(f"{endpoint} not found")

            if status >= 500:
                record_provider_error(PROVIDER, entity, "http_5xx")
                logger.error(f"[FETCH] HTTP {status} on {endpoint}")
                last_error = UpstreamServerError(f"HTTP {status} on {endpoint}", status_code=status)
                if not is_last:
                    await asyncio.sleep(wait_time)
                continue

            if status >= 400:
                record_provider_error(PROVIDER, entity, f"http_{status}")
                raise DataSourceError(f"HTTP {status} on {endpoint}: {response.text[:200]}", status_code=status)

            try:
                data = response.json()
            except ValueError as e:
                record_provider_error(PROVIDER, entity, "invalid_json")
                raise UpstreamServerError(f"Unreadable payload from {endpoint}: {e}", status_code=status) from e

            if delay:
                await asyncio.sleep(delay)  # Respect rate limit
            return data

        raise last_error

    # --- Standings ---

    def _parse_standing(self, row: dict) -> Standing:
        return Standing(
            team=_parse_team(row["team"]),
            position=int(row["position"]),
            won=int(row.get("won") or 0),
            draw=int(row.get("draw") or 0),
            lost=int(row.get("lost") or 0),
            goals_for=int(row.get("goalsFor") or 0),
            goals_against=int(row.get("goalsAgainst") or 0),
        )

    async def get_standings(self, league: str) -> tuple[Standing, ...]:
        code = league.upper()
        data = await self._rate_limited_request(f"competitions/{code}/standings", entity="standings")
        groups = data.get("standings") or []
        # CL league phase and domestic leagues both report one TOTAL table
        total = next((g for g in groups if g.get("type") == "TOTAL"), groups[0] if groups else None)
        if not total or not total.get("table"):
            raise UpstreamServerError(f"No standings table in response for {code}")

        rows = tuple(sorted(
            (self._parse_standing(row) for row in total["table"]),
            key=lambda r: r.position,
        ))
        logger.info(f"[FETCH] {code}: {len(rows)} standings rows")
        return rows

    # --- Matches ---

    def _parse_match(self, match: dict) -> Match:
        full_time = (match.get("score") or {}).get("fullTime") or {}
        return Match(
            id=int(match["id"]),
            matchday=int(match["matchday"]),
            home_team=_parse_team(match["homeTeam"]),
            away_team=_parse_team(match["awayTeam"]),
            utc_date=_parse_datetime(match["utcDate"]),
            status=match.get("status") or "SCHEDULED",
            home_goals=full_time.get("home"),
            away_goals=full_time.get("away"),
        )

    def _parse_matches(self, data: dict) -> list[Match]:
        matches = []
        for raw in data.get("matches") or []:
            # Knockout ties without a matchday or TBD teams
            if raw.get("matchday") is None or not (raw.get("homeTeam") or {}).get("id") \
                    or not (raw.get("awayTeam") or {}).get("id"):
                logger.debug(f"[FETCH] Skipping fixture without matchday/teams: {raw.get('id')}")
                continue
            try:
                matches.append(self._parse_match(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"[FETCH] Error parsing fixture {raw.get('id')}: {e}")
        return matches

    async def get_matches(self, league: str, matchday: int) -> list[Match]:
        code = league.upper()
        data = await self._rate_limited_request(
            f"competitions/{code}/matches", {"matchday": matchday}, entity="matches"
        )
        matches = self._parse_matches(data)
        logger.info(f"[FETCH] {code} matchday {matchday}: {len(matches)} fixtures")
        return matches

    async def get_finished_matches(self, league: str, through_matchday: int) -> list[Match]:
        """Finished fixtures up to a matchday, in one request."""
        code = league.upper()
        data = await self._rate_limited_request(
            f"competitions/{code}/matches", {"status": "FINISHED"}, entity="matches"
        )
        return [
            m for m in self._parse_matches(data)
            if m.is_finished and m.matchday <= through_matchday
        ]

    async def get_current_matchday(self, league: str) -> int:
        """
        Lowest playable matchday that still has a fixture kicking off after now.

        Falls back to the league's first playable matchday (or 1).
        """
        code = league.upper()
        data = await self._rate_limited_request(
            f"competitions/{code}/matches",
            {"status": ",".join(sorted(SCHEDULED_STATUSES))},
            entity="matches",
        )
        config = LEAGUES.get(code)
        now = self.clock.now()
        upcoming = [
            m.matchday
            for m in self._parse_matches(data)
            if m.status in SCHEDULED_STATUSES
            and m.utc_date > now
            and (config is None or config.is_playable(m.matchday))
        ]
        if upcoming:
            return min(upcoming)
        fallback = (config.first_playable_matchday if config else None) or 1
        logger.info(f"[FETCH] {code}: no upcoming fixtures, current matchday falls back to {fallback}")
        return fallback

    async def close(self) -> None:
        await self.client.aclose()
