"""Race mode: follow a subset of teams, auto-resolve everything else."""

from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Optional, Sequence

from season_forecast.models import Match, Prediction, PredictionType, Standing, Team


@dataclass
class RacePartition:
    """Fixtures shown to the user and fixtures resolved automatically."""

    tracked: list[Match]
    untracked: list[Match]

    @property
    def head_to_head(self) -> list[Match]:
        return [m for m in self.tracked if m.is_head_to_head]


def partition_matches(matches: Iterable[Match], tracked_team_ids: Iterable[int]) -> RacePartition:
    """
    Split a matchday's fixtures on whether a followed team plays.

    Tracked fixtures come back flagged ``is_head_to_head`` when both sides are
    followed. Untracked fixtures are kept, not dropped: they still move the
    table.
    """
    followed = set(tracked_team_ids)
    tracked: list[Match] = []
    untracked: list[Match] = []
    for match in matches:
        home_in = match.home_team.id in followed
        away_in = match.away_team.id in followed
        if home_in or away_in:
            tracked.append(replace(match, is_head_to_head=home_in and away_in))
        else:
            untracked.append(replace(match, is_head_to_head=False))
    return RacePartition(tracked=tracked, untracked=untracked)


# --- Summary ---


def result_for_team(match: Match, prediction: Optional[Prediction], team_id: int) -> Optional[str]:
    """"win" / "draw" / "loss" from the team's side of a predicted fixture."""
    if prediction is None:
        return None
    kind = prediction.type
    if kind is PredictionType.CUSTOM:
        if prediction.home_goals is None or prediction.away_goals is None:
            return "draw"
        if prediction.home_goals > prediction.away_goals:
            kind = PredictionType.HOME
        elif prediction.home_goals < prediction.away_goals:
            kind = PredictionType.AWAY
        else:
            kind = PredictionType.DRAW
    if kind is PredictionType.DRAW:
        return "draw"
    home_won = kind is PredictionType.HOME
    is_home = match.home_team.id == team_id
    return "win" if home_won == is_home else "loss"


@dataclass
class RaceLine:
    """One followed team in the race summary."""

    team: Team
    position: Optional[int]
    points: int
    fixtures: list[dict]

    def to_dict(self) -> dict:
        return {
            "team": self.team.to_dict(),
            "position": self.position,
            "points": self.points,
            "fixtures": self.fixtures,
        }


def race_summary(
    table: Sequence[Standing],
    tracked_team_ids: Iterable[int],
    matches: Iterable[Match],
    predictions: Mapping[int, Prediction],
) -> list[RaceLine]:
    """
    Per followed team: position, points and every predicted fixture it played,
    ordered by table position then matchday.
    """
    rows = {row.team.id: row for row in table}
    match_list = sorted(matches, key=lambda m: (m.matchday, m.utc_date, m.id))
    lines: list[RaceLine] = []
    for team_id in tracked_team_ids:
        row = rows.get(team_id)
        if row is None:
            continue
        fixtures = []
        for match in match_list:
            if not match.involves(team_id):
                continue
            prediction = predictions.get(match.id)
            is_home = match.home_team.id == team_id
            score = None
            if prediction is not None and prediction.type is PredictionType.CUSTOM:
                score = f"{prediction.home_goals}-{prediction.away_goals}"
            fixtures.append({
                "match_id": match.id,
                "matchday": match.matchday,
                "opponent": (match.away_team if is_home else match.home_team).to_dict(),
                "venue": "home" if is_home else "away",
                "result": result_for_team(match, prediction, team_id),
                "score": score,
                "is_head_to_head": match.is_head_to_head,
            })
        lines.append(RaceLine(team=row.team, position=row.position, points=row.points, fixtures=fixtures))
    lines.sort(key=lambda line: (line.position or 0, line.team.id))
    return lines
