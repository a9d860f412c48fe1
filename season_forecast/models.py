"""Data transfer objects shared by the engine, the data source and the store.

All objects are immutable. A table snapshot is a ``tuple[Standing, ...]`` and
every transformation builds a new one.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional


class PredictionType(str, Enum):
    """Outcome kinds a user can pick for a fixture."""

    HOME = "home"
    DRAW = "draw"
    AWAY = "away"
    CUSTOM = "custom"


class AutoPolicy(str, Enum):
    """How race mode resolves fixtures between untracked teams."""

    AUTO_BY_POSITION = "auto-by-position"
    FORCE_DRAW = "force-draw"


# Fixture statuses reported by football-data.org
SCHEDULED_STATUSES = frozenset({"SCHEDULED", "TIMED"})
FINISHED_STATUS = "FINISHED"


@dataclass(frozen=True)
class Team:
    """Team identity, stable across a season."""

    id: int
    name: str
    short_name: str = ""
    tla: str = ""
    crest: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "short_name": self.short_name,
            "tla": self.tla,
            "crest": self.crest,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            short_name=data.get("short_name") or "",
            tla=data.get("tla") or "",
            crest=data.get("crest"),
        )


@dataclass(frozen=True)
class Standing:
    """One table row.

    ``played_games``, ``goal_difference`` and ``points`` are derived from the
    result and goal counts so they can never drift from them.
    """

    team: Team
    position: int
    won: int = 0
    draw: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0

    @property
    def played_games(self) -> int:
        return self.won + self.draw + self.lost

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def points(self) -> int:
        return self.won * 3 + self.draw

    def with_result(self, scored: int, conceded: int) -> "Standing":
        """Return a copy with one more game played."""
        if scored > conceded:
            outcome = {"won": self.won + 1}
        elif scored < conceded:
            outcome = {"lost": self.lost + 1}
        else:
            outcome = {"draw": self.draw + 1}
        return replace(
            self,
            goals_for=self.goals_for + scored,
            goals_against=self.goals_against + conceded,
            **outcome,
        )

    def to_dict(self) -> dict:
        return {
            "team": self.team.to_dict(),
            "position": self.position,
            "played_games": self.played_games,
            "won": self.won,
            "draw": self.draw,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Standing":
        return cls(
            team=Team.from_dict(data["team"]),
            position=int(data["position"]),
            won=int(data.get("won", 0)),
            draw=int(data.get("draw", 0)),
            lost=int(data.get("lost", 0)),
            goals_for=int(data.get("goals_for", 0)),
            goals_against=int(data.get("goals_against", 0)),
        )


@dataclass(frozen=True)
class Match:
    """A fixture. ``home_goals``/``away_goals`` are the real score once finished."""

    id: int
    matchday: int
    home_team: Team
    away_team: Team
    utc_date: datetime
    status: str = "SCHEDULED"
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    is_head_to_head: bool = False  # Race mode only

    @property
    def is_finished(self) -> bool:
        return (
            self.status == FINISHED_STATUS
            and self.home_goals is not None
            and self.away_goals is not None
        )

    @property
    def team_ids(self) -> tuple[int, int]:
        return (self.home_team.id, self.away_team.id)

    def involves(self, team_id: int) -> bool:
        return team_id in self.team_ids

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "matchday": self.matchday,
            "home_team": self.home_team.to_dict(),
            "away_team": self.away_team.to_dict(),
            "utc_date": self.utc_date.isoformat(),
            "status": self.status,
            "home_goals": self.home_goals,
            "away_goals": self.away_goals,
            "is_head_to_head": self.is_head_to_head,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        return cls(
            id=int(data["id"]),
            matchday=int(data["matchday"]),
            home_team=Team.from_dict(data["home_team"]),
            away_team=Team.from_dict(data["away_team"]),
            utc_date=datetime.fromisoformat(data["utc_date"]),
            status=data.get("status", "SCHEDULED"),
            home_goals=data.get("home_goals"),
            away_goals=data.get("away_goals"),
            is_head_to_head=bool(data.get("is_head_to_head", False)),
        )


@dataclass(frozen=True)
class Prediction:
    """A user's forecast for one fixture. Goals are only used for ``custom``."""

    match_id: int
    type: PredictionType
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    def to_dict(self) -> dict:
        data = {"match_id": self.match_id, "type": self.type.value}
        if self.type is PredictionType.CUSTOM:
            data["home_goals"] = self.home_goals
            data["away_goals"] = self.away_goals
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Prediction":
        return cls(
            match_id=int(data["match_id"]),
            type=PredictionType(data["type"]),
            home_goals=data.get("home_goals"),
            away_goals=data.get("away_goals"),
        )


@dataclass(frozen=True)
class MatchResult:
    """Goals per side for one fixture, tagged with both team ids."""

    home_team_id: int
    away_team_id: int
    home_goals: int
    away_goals: int
    match_id: Optional[int] = None

    @property
    def outcome(self) -> PredictionType:
        if self.home_goals > self.away_goals:
            return PredictionType.HOME
        if self.home_goals < self.away_goals:
            return PredictionType.AWAY
        return PredictionType.DRAW


@dataclass(frozen=True)
class LeagueData:
    """Official table plus the matchday the provider considers current."""

    standings: tuple[Standing, ...]
    current_matchday: int
    fetched_at: float = 0.0
    source: str = "api"  # "api" | "cache"
