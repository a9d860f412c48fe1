"""
Simulation session: the orchestrator behind every forecast operation.

One session follows one league. It owns the predicted table, the matchday
sequencer and the race-mode settings, and writes its state through the
repository after every submission so a later process can resume it.

Every operation that awaits upstream data captures the session token first
and checks it again before touching state. A response that arrives after the
session was restarted or reset raises StaleSessionWrite and is dropped.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from season_forecast.config import get_settings
from season_forecast.engine.auto_resolver import auto_prediction
from season_forecast.engine.historical import reconstruct_table
from season_forecast.engine.race import RacePartition, partition_matches, race_summary
from season_forecast.engine.score_model import resolve_prediction
from season_forecast.engine.sequencer import MatchdaySequencer
from season_forecast.engine.standings import (
    Table,
    apply_zones,
    blank_table,
    fold_results,
    position_changes,
    positions_by_team,
)
from season_forecast.errors import (
    InvalidPrediction,
    MatchdayNotAvailable,
    NoActiveSession,
    SeasonFinished,
    StaleSessionWrite,
    SubmissionInProgress,
)
from season_forecast.etl.fixtures import FixtureFetcher, presentable_matches
from season_forecast.leagues import LeagueConfig, get_league
from season_forecast.models import AutoPolicy, Match, Prediction, PredictionType, Standing
from season_forecast.storage.repository import ForecastRepository, SessionState
from season_forecast.telemetry import record_matchday_submitted
from season_forecast.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass
class MatchdayView:
    """What ``present_matchday`` hands to the caller."""

    league: str
    matchday: Optional[int]
    matches: list[Match]
    table: Table
    is_final: bool = False
    race_mode: bool = False
    auto_matches: list[Match] = field(default_factory=list)  # Race mode: resolved on submit

    def to_dict(self) -> dict:
        return {
            "league": self.league,
            "matchday": self.matchday,
            "is_final": self.is_final,
            "race_mode": self.race_mode,
            "matches": [m.to_dict() for m in self.matches],
            "auto_matches": [m.to_dict() for m in self.auto_matches],
            "table": [row.to_dict() for row in self.table],
        }


@dataclass
class SubmissionResult:
    matchday: int
    table: Table
    applied_match_ids: list[int]
    skipped_match_ids: list[int]
    auto_predictions: list[Prediction]
    next_matchday: Optional[int]

    @property
    def is_final(self) -> bool:
        return self.next_matchday is None

    def to_dict(self) -> dict:
        return {
            "matchday": self.matchday,
            "next_matchday": self.next_matchday,
            "is_final": self.is_final,
            "applied_match_ids": self.applied_match_ids,
            "skipped_match_ids": self.skipped_match_ids,
            "auto_predictions": [p.to_dict() for p in self.auto_predictions],
            "table": [row.to_dict() for row in self.table],
        }


@dataclass
class StandingsView:
    """A table plus how it was obtained.

    ``source`` is "live" (latest predicted table), "snapshot" (saved after a
    simulated matchday), "official" (no matchday simulated yet at that point)
    or "historical" (rebuilt from real results).
    """

    league: str
    matchday: Optional[int]
    source: str
    table: Table
    position_change: dict[int, Optional[int]]
    zones: dict[str, dict]
    skipped_match_ids: list[int] = field(default_factory=list)

    def rows(self) -> list[dict]:
        rows = apply_zones(self.table, self.zones)
        for row in rows:
            row["position_change"] = self.position_change.get(row["team"]["id"])
        return rows

    def to_dict(self) -> dict:
        return {
            "league": self.league,
            "matchday": self.matchday,
            "source": self.source,
            "table": self.rows(),
            "skipped_match_ids": self.skipped_match_ids,
        }


class SimulationSession:
    """Season forecast for one league at a time.

    Args:
        fetcher: Cached access to fixtures and league data.
        repository: Persistent forecast state.
        clock: Source of "now" for fixture filtering.
        lookahead: Matchdays tried forward when the current one has no fixtures.
        default_policy: Auto policy used when ``start_session`` gets none.
    """

    def __init__(
        self,
        fetcher: FixtureFetcher,
        repository: ForecastRepository,
        clock: Optional[Clock] = None,
        lookahead: Optional[int] = None,
        default_policy: Optional[str] = None,
    ):
        settings = get_settings()
        self.fetcher = fetcher
        self.repository = repository
        self.clock = clock or SystemClock()
        self.lookahead = settings.MATCHDAY_LOOKAHEAD if lookahead is None else lookahead
        self.default_policy = AutoPolicy(default_policy or settings.DEFAULT_AUTO_POLICY)
        self._lock = asyncio.Lock()
        self._clear()

    def _clear(self) -> None:
        self.token: Optional[str] = None
        self.league: Optional[LeagueConfig] = None
        self.sequencer: Optional[MatchdaySequencer] = None
        self.official_table: Table = ()
        self.predicted_table: Table = ()
        self.start_matchday: Optional[int] = None
        self.race_mode = False
        self.tracked_team_ids: tuple[int, ...] = ()
        self.policy = self.default_policy
        self.completed_match_ids: set[int] = set()
        self.predictions: list[tuple[Match, Prediction]] = []
        self.snapshots: dict[int, Table] = {}
        self._presented: Optional[RacePartition] = None
        self._presented_matchday: Optional[int] = None

    # --- guards ---

    @property
    def is_active(self) -> bool:
        return self.league is not None

    def _require_active(self) -> LeagueConfig:
        if self.league is None:
            raise NoActiveSession("No forecast running; start a session first")
        return self.league

    def _check_token(self, token: str) -> None:
        if token != self.token:
            logger.warning(f"[SESSION] Discarding response for superseded session {token}")
            raise StaleSessionWrite(token, self.token)

    def state(self) -> SessionState:
        league = self._require_active()
        return SessionState(
            league=league.code,
            current_matchday=self.sequencer.current,
            predicted_table=self.predicted_table,
            official_table=self.official_table,
            race_mode=self.race_mode,
            tracked_team_ids=self.tracked_team_ids,
            auto_policy=self.policy.value,
            start_matchday=self.start_matchday,
            is_final=self.sequencer.is_final,
        )

    # --- lifecycle ---

    async def start_session(
        self,
        league: str,
        official_standings: Optional[Sequence[Standing]] = None,
        start_matchday: Optional[int] = None,
        race_mode: bool = False,
        tracked_team_ids: Iterable[int] = (),
        policy: Optional[str] = None,
    ) -> SessionState:
        """
        Start a fresh forecast for a league, dropping any previous state.

        Args:
            league: League code.
            official_standings: Starting table. Fetched when omitted.
            start_matchday: First matchday to forecast. Defaults to the
                provider's current matchday.
            race_mode: Follow only ``tracked_team_ids`` and auto-resolve the rest.
            tracked_team_ids: Teams followed in race mode.
            policy: ``auto-by-position`` or ``force-draw``.

        Raises:
            UnknownLeague: Unknown league code.
            DataSourceError: League data could not be fetched.
            StaleSessionWrite: Another start or a reset happened meanwhile.
        """
        config = get_league(league)
        tracked = tuple(dict.fromkeys(int(t) for t in tracked_team_ids))
        if race_mode and not tracked:
            raise ValueError("Race mode needs at least one tracked team")
        resolved_policy = AutoPolicy(policy) if policy else self.default_policy

        if self.league is not None and self.league.code != config.code:
            logger.info(f"[SESSION] Switching league {self.league.code} -> {config.code}")
        self._clear()
        token = uuid.uuid4().hex
        self.token = token

        if official_standings is None or start_matchday is None:
            league_data = await self.fetcher.get_league_data(config.code)
            self._check_token(token)
            if official_standings is None:
                official_standings = league_data.standings
            if start_matchday is None:
                start_matchday = league_data.current_matchday

        # A submission still saving for the previous session discards its own
        # writes before the new session touches the store
        async with self._lock:
            self._check_token(token)
            self.repository.clear_forecast(config.code, config.max_matchday)

            self.league = config
            self.official_table = tuple(sorted(official_standings, key=lambda r: r.position))
            self.predicted_table = self.official_table
            self.race_mode = race_mode
            self.tracked_team_ids = tracked if race_mode else ()
            self.policy = resolved_policy
            self.sequencer = MatchdaySequencer(config, lookahead=self.lookahead)
            self.start_matchday = self.sequencer.start(start_matchday)

            state = self.state()
            self.repository.save_session(state)
        logger.info(
            f"[SESSION] {config.code}: started at matchday {self.start_matchday} "
            f"(race_mode={race_mode}, tracked={list(self.tracked_team_ids)})"
        )
        return state

    def resume(self, league: str) -> Optional[SessionState]:
        """Reload a persisted forecast. Returns None when nothing was saved."""
        config = get_league(league)
        if self._lock.locked():
            raise SubmissionInProgress(f"{config.code}: cannot resume while a submission is being saved")
        state = self.repository.get_session(config.code)
        if state is None:
            return None

        self._clear()
        self.token = uuid.uuid4().hex
        self.league = config
        self.official_table = state.official_table
        self.predicted_table = state.predicted_table
        self.race_mode = state.race_mode
        self.tracked_team_ids = state.tracked_team_ids
        self.policy = AutoPolicy(state.auto_policy)
        self.start_matchday = state.start_matchday
        self.completed_match_ids = self.repository.get_completed_matches(config.code)
        self.predictions = self.repository.get_predictions(config.code)
        self.snapshots = self.repository.get_snapshots(config.code)
        self.sequencer = MatchdaySequencer(
            config,
            completed=self.repository.get_completed_matchdays(config.code),
            lookahead=self.lookahead,
        )
        # Past the last matchday means nothing is left to offer
        self.sequencer.start(config.max_matchday + 1 if state.is_final else state.current_matchday)
        logger.info(f"[SESSION] {config.code}: resumed at matchday {self.sequencer.current}")
        return self.state()

    def reset(self) -> None:
        """Forget the running forecast, persisted state included."""
        if self.league is not None:
            self.repository.clear_forecast(self.league.code, self.league.max_matchday)
            logger.info(f"[SESSION] {self.league.code}: reset")
        self._clear()

    # --- matchdays ---

    async def _fetch_presentable(self, token: str, matchday: int) -> list[Match]:
        matches = await self.fetcher.get_matches(self.league.code, matchday)
        self._check_token(token)
        return presentable_matches(matches, self.clock.now(), self.completed_match_ids)

    async def present_matchday(self) -> MatchdayView:
        """
        Fixtures of the current matchday and the predicted table.

        An empty matchday makes the session try the next few available ones.
        If all of them are empty the current matchday is kept and shown
        without fixtures. Fetch failures leave the session untouched.
        """
        league = self._require_active()
        if self.sequencer.is_final:
            return MatchdayView(
                league=league.code,
                matchday=None,
                matches=[],
                table=self.predicted_table,
                is_final=True,
                race_mode=self.race_mode,
            )

        token = self.token
        matchday = self.sequencer.current
        matches = await self._fetch_presentable(token, matchday)
        if not matches:
            for candidate in self.sequencer.lookahead_candidates():
                matches = await self._fetch_presentable(token, candidate)
                if matches:
                    logger.info(f"[SESSION] {league.code}: matchday {matchday} empty, moving to {candidate}")
                    matchday = self.sequencer.advance_to(candidate)
                    break

        if not matches:
            logger.info(f"[SESSION] {league.code}: no fixtures around matchday {matchday}")
            return MatchdayView(
                league=league.code,
                matchday=matchday,
                matches=[],
                table=self.predicted_table,
                race_mode=self.race_mode,
            )

        if self.race_mode:
            partition = partition_matches(matches, self.tracked_team_ids)
        else:
            partition = RacePartition(tracked=list(matches), untracked=[])
        self.sequencer.mark_presented()
        self._presented = partition
        self._presented_matchday = matchday
        self.repository.save_presented(league.code, matchday, partition.tracked + partition.untracked)

        return MatchdayView(
            league=league.code,
            matchday=matchday,
            matches=partition.tracked,
            table=self.predicted_table,
            race_mode=self.race_mode,
            auto_matches=partition.untracked,
        )

    def skip_matchday(self) -> SessionState:
        """
        Give up on the current matchday without submitting it and move on.

        Used when a matchday and the whole lookahead window have no fixtures
        left to predict. Skipping the last available matchday ends the season.

        Raises:
            NoActiveSession: No forecast running.
            SubmissionInProgress: A submission is being saved.
            SeasonFinished: The season is already final.
        """
        league = self._require_active()
        if self._lock.locked():
            raise SubmissionInProgress(f"{league.code}: a submission is already being saved")
        skipped = self.sequencer.current
        self.sequencer.skip()
        self._presented = None
        self._presented_matchday = None

        state = self.state()
        self.repository.save_session(state)
        logger.info(f"[SESSION] {league.code}: matchday {skipped} skipped, next={self.sequencer.current}")
        return state

    def _collect_predictions(self, predictions: Iterable[Prediction]) -> tuple[list, list[Prediction]]:
        """Pair every presented fixture with a prediction; untracked ones are auto-resolved."""
        partition = self._presented
        tracked_ids = {m.id for m in partition.tracked}
        untracked_ids = {m.id for m in partition.untracked}

        given: dict[int, Prediction] = {}
        for prediction in predictions:
            if prediction.match_id in untracked_ids:
                raise InvalidPrediction(prediction.match_id, "fixture is resolved automatically in race mode")
            if prediction.match_id not in tracked_ids:
                raise InvalidPrediction(
                    prediction.match_id, f"not a fixture of matchday {self._presented_matchday}"
                )
            given[prediction.match_id] = prediction

        pairs = []
        for match in partition.tracked:
            # Untouched fixtures count as draws
            pairs.append((match, given.get(match.id) or Prediction(match_id=match.id, type=PredictionType.DRAW)))

        auto: list[Prediction] = []
        positions = positions_by_team(self.predicted_table)
        for match in partition.untracked:
            home_pos = positions.get(match.home_team.id)
            away_pos = positions.get(match.away_team.id)
            if home_pos is None or away_pos is None:
                # Skipped as TeamNotFound when folded
                prediction = Prediction(match_id=match.id, type=PredictionType.DRAW)
            else:
                prediction = auto_prediction(match.id, home_pos, away_pos, self.policy)
            auto.append(prediction)
            pairs.append((match, prediction))
        return pairs, auto

    async def submit_predictions(self, predictions: Iterable[Prediction]) -> SubmissionResult:
        """
        Apply predictions for the presented matchday and advance.

        All results are computed before anything changes; an invalid
        prediction leaves the table and the sequencer as they were.

        Raises:
            NoActiveSession: No forecast running.
            SubmissionInProgress: Another submission has not finished.
            SeasonFinished: Every matchday is already submitted.
            MatchdayNotAvailable: The current matchday was not presented.
            InvalidPrediction: Unknown fixture or malformed custom score.
            StaleSessionWrite: The session was reset while saving.
        """
        league = self._require_active()
        if self._lock.locked():
            raise SubmissionInProgress(f"{league.code}: a submission is already being saved")

        async with self._lock:
            if self.sequencer.is_final:
                raise SeasonFinished(f"{league.code}: season already final")
            matchday = self.sequencer.current
            if self._presented is None or self._presented_matchday != matchday:
                raise MatchdayNotAvailable(matchday, "present the matchday before submitting")

            token = self.token
            pairs, auto = self._collect_predictions(predictions)
            results = [resolve_prediction(p, m.home_team.id, m.away_team.id) for m, p in pairs]
            outcome = fold_results(self.predicted_table, results)
            next_matchday = self.sequencer.next_matchday(matchday)

            completed_matchdays = set(self.sequencer.completed) | {matchday}
            completed_matches = self.completed_match_ids | {m.id for m, _ in pairs}
            all_predictions = self.predictions + pairs
            snapshots = {**self.snapshots, matchday: outcome.table}
            state = SessionState(
                league=league.code,
                current_matchday=next_matchday,
                predicted_table=outcome.table,
                official_table=self.official_table,
                race_mode=self.race_mode,
                tracked_team_ids=self.tracked_team_ids,
                auto_policy=self.policy.value,
                start_matchday=self.start_matchday,
                is_final=next_matchday is None,
            )

            await asyncio.to_thread(
                self.repository.save_submission,
                state, completed_matchdays, completed_matches, all_predictions, snapshots,
            )
            if token != self.token:
                # Reset or restarted while saving. A restart waits for this lock
                # before writing, so only this stale submission is dropped here.
                self.repository.clear_forecast(league.code, league.max_matchday)
                self._check_token(token)

            self.predicted_table = outcome.table
            self.completed_match_ids = completed_matches
            self.predictions = all_predictions
            self.snapshots = snapshots
            self._presented = None
            self._presented_matchday = None
            self.sequencer.submit()

        record_matchday_submitted(league.code, self.race_mode)
        skipped = [r.match_id for r in outcome.skipped]
        logger.info(
            f"[SESSION] {league.code}: matchday {matchday} submitted "
            f"({len(outcome.applied)} applied, {len(skipped)} skipped), next={next_matchday}"
        )
        return SubmissionResult(
            matchday=matchday,
            table=outcome.table,
            applied_match_ids=[r.match_id for r in outcome.applied],
            skipped_match_ids=skipped,
            auto_predictions=auto,
            next_matchday=next_matchday,
        )

    # --- views ---

    def _view(self, matchday: Optional[int], source: str, table: Table, skipped=None) -> StandingsView:
        return StandingsView(
            league=self.league.code,
            matchday=matchday,
            source=source,
            table=table,
            position_change=position_changes(table, self.official_table),
            zones=self.league.zones,
            skipped_match_ids=list(skipped or []),
        )

    async def view_standings(self, at_matchday: Optional[int] = None) -> StandingsView:
        """
        Table at a point of the season. Never changes the session.

        Args:
            at_matchday: None for the live predicted table. A simulated
                matchday gives its saved snapshot; a matchday before the
                forecast started is rebuilt from real results.

        Raises:
            MatchdayNotAvailable: The matchday is out of range or not simulated yet.
        """
        league = self._require_active()
        if at_matchday is None:
            last = max(self.snapshots) if self.snapshots else None
            return self._view(last, "live", self.predicted_table)

        if not 1 <= at_matchday <= league.max_matchday:
            raise MatchdayNotAvailable(at_matchday, f"{league.code} has matchdays 1-{league.max_matchday}")

        if at_matchday in self.snapshots:
            return self._view(at_matchday, "snapshot", self.snapshots[at_matchday])

        if self.start_matchday is not None and at_matchday < self.start_matchday:
            token = self.token
            matches = await self.fetcher.get_finished_matches(league.code, at_matchday)
            self._check_token(token)
            rebuilt = reconstruct_table(blank_table(self.official_table), matches, at_matchday)
            return self._view(at_matchday, "historical", rebuilt.table, rebuilt.skipped_match_ids)

        simulated = [md for md in self.snapshots if md <= at_matchday]
        last_done = max(self.snapshots) if self.snapshots else None
        if last_done is not None and at_matchday < last_done:
            # Skipped (empty or excluded) matchday inside the simulated range
            if simulated:
                return self._view(at_matchday, "snapshot", self.snapshots[max(simulated)])
            return self._view(at_matchday, "official", self.official_table)

        raise MatchdayNotAvailable(at_matchday, "not simulated yet")

    def race_summary(self) -> list[dict]:
        """Followed teams with their predicted fixtures, in table order."""
        self._require_active()
        if not self.race_mode:
            return []
        predictions = {prediction.match_id: prediction for _, prediction in self.predictions}
        tracked = set(self.tracked_team_ids)
        matches = [
            match for match, _ in self.predictions
            if match.home_team.id in tracked or match.away_team.id in tracked
        ]
        return [
            line.to_dict()
            for line in race_summary(self.predicted_table, self.tracked_team_ids, matches, predictions)
        ]


class SessionRegistry:
    """One session per league, sharing the fetcher and the repository."""

    def __init__(
        self,
        fetcher: FixtureFetcher,
        repository: ForecastRepository,
        clock: Optional[Clock] = None,
    ):
        self.fetcher = fetcher
        self.repository = repository
        self.clock = clock or SystemClock()
        self._sessions: dict[str, SimulationSession] = {}

    def get(self, league: str) -> SimulationSession:
        """Session for a league, resumed from the store on first access."""
        code = get_league(league).code
        session = self._sessions.get(code)
        if session is None:
            session = SimulationSession(self.fetcher, self.repository, clock=self.clock)
            session.resume(code)
            self._sessions[code] = session
        return session
