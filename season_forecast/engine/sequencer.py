"""
Matchday sequencing.

Per-matchday state: UNSEEN -> PRESENTED -> SUBMITTED.
Season state: IN_PROGRESS -> FINAL.

The sequencer only ever moves forward, never offers a submitted matchday
again, never leaves [1, max_matchday] and skips matchdays the league
configuration marks as excluded. Fixture lookups are the caller's job; the
sequencer only says which matchday to try next.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from season_forecast.errors import MatchdayNotAvailable, SeasonFinished
from season_forecast.leagues import LeagueConfig

logger = logging.getLogger(__name__)


class MatchdayState(str, Enum):
    UNSEEN = "unseen"
    PRESENTED = "presented"
    SUBMITTED = "submitted"


class SeasonState(str, Enum):
    IN_PROGRESS = "in_progress"
    FINAL = "final"


class MatchdaySequencer:
    """Tracks the current matchday and the set of submitted matchdays for one league."""

    def __init__(self, league: LeagueConfig, completed: Iterable[int] = (), lookahead: int = 3):
        self.league = league
        self.lookahead = max(0, lookahead)
        self._completed: set[int] = {int(md) for md in completed}
        self._presented: Optional[int] = None
        self.current: Optional[int] = None
        self.season_state = SeasonState.IN_PROGRESS

    @property
    def completed(self) -> frozenset[int]:
        return frozenset(self._completed)

    @property
    def is_final(self) -> bool:
        return self.season_state is SeasonState.FINAL

    def is_available(self, matchday: int) -> bool:
        return self.league.is_playable(matchday) and matchday not in self._completed

    def next_matchday(self, after: int) -> Optional[int]:
        """First available matchday strictly after ``after``, or None."""
        for matchday in range(max(after + 1, 1), self.league.max_matchday + 1):
            if self.is_available(matchday):
                return matchday
        return None

    def _move_to(self, matchday: Optional[int]) -> Optional[int]:
        self.current = matchday
        self._presented = None
        if matchday is None:
            self.season_state = SeasonState.FINAL
            logger.info(f"[SEQUENCER] {self.league.code}: season final after {sorted(self._completed)}")
        return matchday

    def start(self, start_matchday: Optional[int] = None) -> Optional[int]:
        """
        Position the sequencer on the first available matchday at or after
        ``start_matchday`` (default 1). Returns None and goes FINAL if there is none.
        """
        self.season_state = SeasonState.IN_PROGRESS
        start = start_matchday if start_matchday and start_matchday > 0 else 1
        candidate = start if self.is_available(start) else self.next_matchday(start)
        return self._move_to(candidate)

    def lookahead_candidates(self) -> list[int]:
        """Matchdays to try, in order, when the current one has no fixtures."""
        candidates: list[int] = []
        matchday = self.current
        while matchday is not None and len(candidates) < self.lookahead:
            matchday = self.next_matchday(matchday)
            if matchday is not None:
                candidates.append(matchday)
        return candidates

    def advance_to(self, matchday: int) -> int:
        """Jump forward to an available matchday (used after a lookahead hit)."""
        if self.current is not None and matchday < self.current:
            raise MatchdayNotAvailable(matchday, f"sequencer is already at {self.current}")
        if not self.is_available(matchday):
            raise MatchdayNotAvailable(matchday, "excluded, out of range or already submitted")
        self._move_to(matchday)
        return matchday

    def skip(self) -> Optional[int]:
        """
        Leave the current matchday unsubmitted and move to the next available one.

        Returns:
            The new current matchday, or None when nothing is left (FINAL).

        Raises:
            SeasonFinished: The season is already FINAL.
        """
        if self.is_final or self.current is None:
            raise SeasonFinished(f"{self.league.code}: no matchday left to skip")
        skipped = self.current
        matchday = self._move_to(self.next_matchday(skipped))
        logger.info(f"[SEQUENCER] {self.league.code}: skipped matchday {skipped}, now at {matchday}")
        return matchday

    def mark_presented(self) -> int:
        if self.is_final or self.current is None:
            raise SeasonFinished(f"{self.league.code}: no matchday left to present")
        self._presented = self.current
        return self.current

    def state_of(self, matchday: int) -> MatchdayState:
        if matchday in self._completed:
            return MatchdayState.SUBMITTED
        if matchday == self._presented:
            return MatchdayState.PRESENTED
        return MatchdayState.UNSEEN

    def submit(self) -> Optional[int]:
        """
        Mark the presented matchday submitted and advance.

        Returns:
            The next matchday, or None when the season is now FINAL.

        Raises:
            SeasonFinished: The season is already FINAL.
            MatchdayNotAvailable: The current matchday was never presented.
        """
        if self.is_final or self.current is None:
            raise SeasonFinished(f"{self.league.code}: season already final")
        if self._presented != self.current:
            raise MatchdayNotAvailable(self.current, "matchday was not presented")
        self._completed.add(self.current)
        return self._move_to(self.next_matchday(self.current))
