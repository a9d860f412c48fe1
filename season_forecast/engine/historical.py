"""Rebuild the table as it stood after a past matchday from real results."""

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from season_forecast.engine.standings import Table, fold_results
from season_forecast.models import Match, MatchResult, Standing

logger = logging.getLogger(__name__)


@dataclass
class HistoricalTable:
    """Reconstructed table plus the fixtures that could not be applied."""

    through_matchday: int
    table: Table
    applied_match_ids: list[int]
    skipped_match_ids: list[int]


def real_results(matches: Iterable[Match], through_matchday: int) -> list[MatchResult]:
    """
    Finished fixtures up to and including ``through_matchday``, as results in
    replay order (matchday, kickoff, id). Unfinished fixtures are ignored.
    """
    finished = [
        m for m in matches
        if m.is_finished and 1 <= m.matchday <= through_matchday
    ]
    finished.sort(key=lambda m: (m.matchday, m.utc_date, m.id))
    return [
        MatchResult(
            home_team_id=m.home_team.id,
            away_team_id=m.away_team.id,
            home_goals=m.home_goals,
            away_goals=m.away_goals,
            match_id=m.id,
        )
        for m in finished
    ]


def reconstruct_table(
    starting_table: Sequence[Standing],
    matches: Iterable[Match],
    through_matchday: int,
) -> HistoricalTable:
    """
    Replay real results for matchdays 1..K on top of ``starting_table``.

    Fixtures referencing teams missing from the table are skipped and
    reported, never fatal. Same inputs always give the same table.
    """
    outcome = fold_results(starting_table, real_results(matches, through_matchday))
    if outcome.skipped:
        logger.warning(
            f"[HISTORY] Matchday {through_matchday}: skipped {len(outcome.skipped)} "
            f"fixtures with unknown teams"
        )
    return HistoricalTable(
        through_matchday=through_matchday,
        table=outcome.table,
        applied_match_ids=[r.match_id for r in outcome.applied],
        skipped_match_ids=[r.match_id for r in outcome.skipped],
    )
