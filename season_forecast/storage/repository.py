"""Typed JSON blobs on top of the key-value store.

Cached upstream blobs are wrapped as ``{"fetched_at": <epoch>, "data": ...}``.
A blob older than the TTL the caller passes is deleted on read so the next
lookup refetches it.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from season_forecast.models import LeagueData, Match, Prediction, Standing
from season_forecast.storage import keys
from season_forecast.storage.store import KeyValueStore
from season_forecast.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Serializable part of a running forecast."""

    league: str
    current_matchday: Optional[int]
    predicted_table: tuple[Standing, ...]
    official_table: tuple[Standing, ...]
    race_mode: bool = False
    tracked_team_ids: tuple[int, ...] = ()
    auto_policy: str = "auto-by-position"
    start_matchday: Optional[int] = None
    is_final: bool = False

    def to_dict(self) -> dict:
        return {
            "league": self.league,
            "current_matchday": self.current_matchday,
            "predicted_table": [row.to_dict() for row in self.predicted_table],
            "official_table": [row.to_dict() for row in self.official_table],
            "race_mode": self.race_mode,
            "tracked_team_ids": list(self.tracked_team_ids),
            "auto_policy": self.auto_policy,
            "start_matchday": self.start_matchday,
            "is_final": self.is_final,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        return cls(
            league=data["league"],
            current_matchday=data.get("current_matchday"),
            predicted_table=tuple(Standing.from_dict(r) for r in data.get("predicted_table", [])),
            official_table=tuple(Standing.from_dict(r) for r in data.get("official_table", [])),
            race_mode=bool(data.get("race_mode", False)),
            tracked_team_ids=tuple(int(t) for t in data.get("tracked_team_ids", [])),
            auto_policy=data.get("auto_policy", "auto-by-position"),
            start_matchday=data.get("start_matchday"),
            is_final=bool(data.get("is_final", False)),
        )


class ForecastRepository:
    """Reads and writes every blob the forecast keeps in the store."""

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or SystemClock()

    # --- raw JSON ---

    def _read_json(self, key: str) -> Optional[Any]:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"[STORE] Dropping unreadable blob {key}: {e}")
            self.store.delete(key)
            return None

    def _write_json(self, key: str, data: Any) -> None:
        self.store.set(key, json.dumps(data, separators=(",", ":")).encode("utf-8"))

    # --- cached upstream data ---

    def _read_cached(self, key: str, ttl: float) -> Optional[Any]:
        blob = self._read_json(key)
        if blob is None:
            return None
        age = self.clock.time() - float(blob.get("fetched_at", 0))
        if age >= ttl:
            logger.info(f"[STORE] Invalidating stale {key} (age={age:.0f}s, ttl={ttl}s)")
            self.store.delete(key)
            return None
        return blob.get("data")

    def _write_cached(self, key: str, data: Any) -> None:
        self._write_json(key, {"fetched_at": self.clock.time(), "data": data})

    def cache_age(self, key: str) -> Optional[float]:
        """Seconds since a cached blob was fetched, or None if absent."""
        blob = self._read_json(key)
        if blob is None:
            return None
        return self.clock.time() - float(blob.get("fetched_at", 0))

    def get_fixtures(self, league: str, matchday: int, ttl: float) -> Optional[list[Match]]:
        data = self._read_cached(keys.fixtures_key(league, matchday), ttl)
        if data is None:
            return None
        return [Match.from_dict(m) for m in data]

    def save_fixtures(self, league: str, matchday: int, matches: list[Match]) -> None:
        self._write_cached(keys.fixtures_key(league, matchday), [m.to_dict() for m in matches])

    def get_league_data(self, league: str, ttl: float) -> Optional[LeagueData]:
        key = keys.league_data_key(league)
        data = self._read_cached(key, ttl)
        if data is None:
            return None
        return LeagueData(
            standings=tuple(Standing.from_dict(r) for r in data["standings"]),
            current_matchday=int(data["current_matchday"]),
            fetched_at=self.clock.time() - (self.cache_age(key) or 0.0),
            source="cache",
        )

    def save_league_data(self, league: str, league_data: LeagueData) -> None:
        self._write_cached(keys.league_data_key(league), {
            "standings": [row.to_dict() for row in league_data.standings],
            "current_matchday": league_data.current_matchday,
        })

    def invalidate_league_data(self, league: str) -> None:
        self.store.delete(keys.league_data_key(league))

    # --- forecast state ---

    def get_presented(self, league: str, matchday: int) -> list[Match]:
        data = self._read_json(keys.presented_key(league, matchday)) or []
        return [Match.from_dict(m) for m in data]

    def save_presented(self, league: str, matchday: int, matches: list[Match]) -> None:
        self._write_json(keys.presented_key(league, matchday), [m.to_dict() for m in matches])

    def get_completed_matchdays(self, league: str) -> set[int]:
        return {int(md) for md in self._read_json(keys.completed_matchdays_key(league)) or []}

    def get_completed_matches(self, league: str) -> set[int]:
        return {int(mid) for mid in self._read_json(keys.completed_matches_key(league)) or []}

    def get_predictions(self, league: str) -> list[tuple[Match, Prediction]]:
        data = self._read_json(keys.predictions_key(league)) or []
        return [(Match.from_dict(e["match"]), Prediction.from_dict(e["prediction"])) for e in data]

    def get_snapshots(self, league: str) -> dict[int, tuple[Standing, ...]]:
        data = self._read_json(keys.snapshots_key(league)) or {}
        return {
            int(md): tuple(Standing.from_dict(r) for r in rows)
            for md, rows in data.items()
        }

    def get_session(self, league: str) -> Optional[SessionState]:
        data = self._read_json(keys.session_key(league))
        return SessionState.from_dict(data) if data else None

    def save_submission(
        self,
        state: SessionState,
        completed_matchdays: set[int],
        completed_matches: set[int],
        predictions: list[tuple[Match, Prediction]],
        snapshots: dict[int, tuple[Standing, ...]],
    ) -> None:
        """Write everything a submission changes. Session blob goes last."""
        league = state.league
        self._write_json(keys.completed_matchdays_key(league), sorted(completed_matchdays))
        self._write_json(keys.completed_matches_key(league), sorted(completed_matches))
        self._write_json(keys.predictions_key(league), [
            {"match": m.to_dict(), "prediction": p.to_dict()} for m, p in predictions
        ])
        self._write_json(keys.snapshots_key(league), {
            str(md): [row.to_dict() for row in table] for md, table in snapshots.items()
        })
        self.save_session(state)

    def save_session(self, state: SessionState) -> None:
        self._write_json(keys.session_key(state.league), state.to_dict())

    def clear_forecast(self, league: str, max_matchday: int) -> None:
        for key in keys.forecast_state_keys(league, max_matchday):
            self.store.delete(key)
