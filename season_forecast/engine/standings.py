"""
Standings accumulation and table views.

Every function takes a table snapshot (sequence of Standing) and returns a
new tuple; nothing is mutated in place.

Ordering: points, goal difference, goals scored (all descending), then team
name (case-insensitive) and team id as the deterministic final tie-break.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence

from season_forecast.errors import TeamNotFound
from season_forecast.models import MatchResult, Standing

logger = logging.getLogger(__name__)

Table = tuple[Standing, ...]


def sort_key(row: Standing) -> tuple:
    """Sort key implementing the table order (ascending sort)."""
    return (
        -row.points,
        -row.goal_difference,
        -row.goals_for,
        row.team.name.casefold(),
        row.team.id,
    )


def rank_table(rows: Iterable[Standing]) -> Table:
    """Sort rows and reassign 1-based positions."""
    ordered = sorted(rows, key=sort_key)
    return tuple(
        row if row.position == idx else replace(row, position=idx)
        for idx, row in enumerate(ordered, start=1)
    )


def apply_result(table: Sequence[Standing], result: MatchResult) -> Table:
    """
    Fold one result into the table and re-rank it.

    Raises:
        TeamNotFound: If either team is missing. The input table is untouched.
    """
    index = {row.team.id: i for i, row in enumerate(table)}
    missing = [tid for tid in (result.home_team_id, result.away_team_id) if tid not in index]
    if missing:
        raise TeamNotFound(missing)

    rows = list(table)
    home_idx = index[result.home_team_id]
    away_idx = index[result.away_team_id]
    rows[home_idx] = rows[home_idx].with_result(result.home_goals, result.away_goals)
    rows[away_idx] = rows[away_idx].with_result(result.away_goals, result.home_goals)
    return rank_table(rows)


@dataclass
class FoldOutcome:
    """Table after folding a batch of results, plus what had to be skipped."""

    table: Table
    applied: list[MatchResult]
    skipped: list[MatchResult]


def fold_results(table: Sequence[Standing], results: Iterable[MatchResult]) -> FoldOutcome:
    """
    Apply results in order. A result whose team is missing is skipped and
    logged; the remaining results still apply.
    """
    current: Table = tuple(table)
    applied: list[MatchResult] = []
    skipped: list[MatchResult] = []
    for result in results:
        try:
            current = apply_result(current, result)
        except TeamNotFound as e:
            logger.warning(f"[STANDINGS] Skipping match {result.match_id}: {e}")
            skipped.append(result)
            continue
        applied.append(result)
    return FoldOutcome(table=current, applied=applied, skipped=skipped)


def blank_table(table: Sequence[Standing]) -> Table:
    """Same teams with every count reset, as at the start of a season."""
    return rank_table(
        Standing(team=row.team, position=row.position)
        for row in table
    )


def positions_by_team(table: Sequence[Standing]) -> dict[int, int]:
    return {row.team.id: row.position for row in table}


def position_changes(table: Sequence[Standing], initial: Sequence[Standing]) -> dict[int, Optional[int]]:
    """
    Places gained per team against an earlier table (positive = climbed).

    Teams absent from ``initial`` map to None.
    """
    before = positions_by_team(initial)
    changes: dict[int, Optional[int]] = {}
    for row in table:
        start = before.get(row.team.id)
        changes[row.team.id] = None if start is None else start - row.position
    return changes


# --- Zones ---


def zone_for_position(position: int, zones: dict[str, dict]) -> Optional[dict]:
    """
    Zone config for a position, from range keys like "1-4" or single keys like "5".

    Malformed keys are ignored.
    """
    for range_str, zone_config in zones.items():
        try:
            if "-" in str(range_str):
                start, end = map(int, str(range_str).split("-"))
                if start <= position <= end:
                    return dict(zone_config)  # Copy to avoid mutating the template
            elif int(range_str) == position:
                return dict(zone_config)
        except (ValueError, TypeError):
            continue
    return None


def apply_zones(table: Sequence[Standing], zones: dict[str, dict]) -> list[dict]:
    """
    Serialize a table with a ``zone`` entry per row.

    Returns plain dicts without a ``zone`` key when the league has no zones.
    """
    rows = [row.to_dict() for row in table]
    if not zones:
        return rows
    for entry in rows:
        entry["zone"] = zone_for_position(entry["position"], zones)
    return rows
