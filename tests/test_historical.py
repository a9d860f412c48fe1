"""Tests for rebuilding past tables from real results."""

from season_forecast.engine.historical import real_results, reconstruct_table
from season_forecast.engine.standings import blank_table

from tests.helpers import finished, make_match, make_table


def _season():
    return [
        finished(101, 1, 1, 2, 2, 0),
        finished(102, 1, 3, 4, 1, 1),
        finished(201, 2, 2, 3, 0, 3),
        finished(202, 2, 4, 1, 2, 2),
        finished(301, 3, 1, 3, 1, 0),
    ]


class TestRealResults:

    def test_only_finished_up_to_matchday(self):
        matches = _season() + [make_match(203, 2, 1, 4)]
        ids = [r.match_id for r in real_results(matches, 2)]
        assert ids == [101, 102, 201, 202]

    def test_replay_order_is_matchday_then_kickoff(self):
        ids = [r.match_id for r in real_results(list(reversed(_season())), 3)]
        assert ids == [101, 102, 201, 202, 301]


class TestReconstructTable:

    def test_table_after_two_matchdays(self):
        start = blank_table(make_table(4))
        rebuilt = reconstruct_table(start, _season(), 2)
        rows = {row.team.id: row for row in rebuilt.table}

        assert rows[1].points == 4  # W 2-0, D 2-2
        assert rows[3].points == 4  # D 1-1, W 3-0
        assert rows[2].points == 0
        assert rows[4].points == 2
        assert all(row.played_games == 2 for row in rebuilt.table)
        assert rebuilt.through_matchday == 2
        assert rebuilt.skipped_match_ids == []

    def test_idempotent(self):
        start = blank_table(make_table(4))
        first = reconstruct_table(start, _season(), 3)
        second = reconstruct_table(start, _season(), 3)
        assert first.table == second.table

    def test_unknown_team_is_skipped_and_reported(self):
        matches = _season() + [finished(999, 1, 1, 42, 5, 0)]
        rebuilt = reconstruct_table(blank_table(make_table(4)), matches, 1)
        assert rebuilt.skipped_match_ids == [999]
        assert {row.team.id: row for row in rebuilt.table}[1].played_games == 1

    def test_matchday_zero_is_starting_table(self):
        start = blank_table(make_table(4))
        assert reconstruct_table(start, _season(), 0).table == start
