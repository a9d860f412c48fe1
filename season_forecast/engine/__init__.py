"""Simulation engine: pure functions over immutable table snapshots."""

from season_forecast.engine.auto_resolver import auto_prediction
from season_forecast.engine.historical import HistoricalTable, reconstruct_table
from season_forecast.engine.race import RacePartition, partition_matches, race_summary
from season_forecast.engine.score_model import resolve_prediction
from season_forecast.engine.sequencer import MatchdaySequencer, MatchdayState, SeasonState
from season_forecast.engine.standings import apply_result, fold_results, rank_table

__all__ = [
    "auto_prediction",
    "HistoricalTable",
    "reconstruct_table",
    "RacePartition",
    "partition_matches",
    "race_summary",
    "resolve_prediction",
    "MatchdaySequencer",
    "MatchdayState",
    "SeasonState",
    "apply_result",
    "fold_results",
    "rank_table",
]
