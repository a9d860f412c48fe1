"""Builders and fakes shared by the forecast tests."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from season_forecast.etl.base import DataSource
from season_forecast.models import Match, Standing, Team

NOW = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_team(team_id: int, name: Optional[str] = None) -> Team:
    return Team(id=team_id, name=name or f"Team {team_id:02d}", tla=f"T{team_id:02d}")


def make_standing(team_id, position, won=0, draw=0, lost=0, goals_for=0, goals_against=0, name=None):
    return Standing(
        team=make_team(team_id, name),
        position=position,
        won=won,
        draw=draw,
        lost=lost,
        goals_for=goals_for,
        goals_against=goals_against,
    )


def make_table(size: int = 10) -> tuple[Standing, ...]:
    """Strictly ordered table: team N sits at position N with fewer points than N-1."""
    rows = []
    for team_id in range(1, size + 1):
        won = size - team_id
        rows.append(make_standing(team_id, team_id, won=won, lost=team_id - 1, goals_for=won * 2, goals_against=team_id))
    return tuple(rows)


def make_match(
    match_id: int,
    matchday: int,
    home: int,
    away: int,
    kickoff: Optional[datetime] = None,
    status: str = "TIMED",
    home_goals: Optional[int] = None,
    away_goals: Optional[int] = None,
) -> Match:
    return Match(
        id=match_id,
        matchday=matchday,
        home_team=make_team(home),
        away_team=make_team(away),
        utc_date=kickoff or NOW + timedelta(days=matchday),
        status=status,
        home_goals=home_goals,
        away_goals=away_goals,
    )


def finished(match_id, matchday, home, away, home_goals, away_goals) -> Match:
    return make_match(
        match_id, matchday, home, away,
        kickoff=NOW - timedelta(days=60 - matchday),
        status="FINISHED",
        home_goals=home_goals,
        away_goals=away_goals,
    )


class FakeSource(DataSource):
    """In-memory data source that records every call.

    ``gate`` (an asyncio.Event) holds every call until it is set.
    ``error`` is raised by every fixture call while it is not None.
    """

    def __init__(self, standings=(), current_matchday=1, matches=None, finished_matches=()):
        self.standings = tuple(standings)
        self.current_matchday = current_matchday
        self.matches: dict[int, list[Match]] = matches or {}
        self.finished_matches = list(finished_matches)
        self.calls: list[tuple] = []
        self.gate: Optional[asyncio.Event] = None
        self.error: Optional[Exception] = None
        self.closed = False

    async def _wait(self):
        if self.gate is not None:
            await self.gate.wait()

    async def get_standings(self, league):
        self.calls.append(("standings", league))
        await self._wait()
        return self.standings

    async def get_current_matchday(self, league):
        self.calls.append(("current_matchday", league))
        return self.current_matchday

    async def get_matches(self, league, matchday):
        self.calls.append(("matches", league, matchday))
        await self._wait()
        if self.error is not None:
            raise self.error
        return list(self.matches.get(matchday, []))

    async def get_finished_matches(self, league, through_matchday):
        self.calls.append(("finished", league, through_matchday))
        return [m for m in self.finished_matches if m.matchday <= through_matchday]

    async def close(self):
        self.closed = True

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


