"""Tests for standings accumulation, ordering and table views."""

import itertools

import pytest

from season_forecast.engine.standings import (
    apply_result,
    apply_zones,
    blank_table,
    fold_results,
    position_changes,
    rank_table,
    zone_for_position,
)
from season_forecast.errors import TeamNotFound
from season_forecast.leagues import CHAMPIONS_LEAGUE, PREMIER_LEAGUE
from season_forecast.models import MatchResult

from tests.helpers import make_standing, make_table


def _assert_row_invariants(table):
    for row in table:
        assert row.played_games == row.won + row.draw + row.lost
        assert row.goal_difference == row.goals_for - row.goals_against
        assert row.points == 3 * row.won + row.draw


def _by_id(table):
    return {row.team.id: row for row in table}


class TestApplyResult:
    """One result folded into the table."""

    def test_leader_beats_runner_up(self):
        """A (1st, 10 pts) beats B (2nd, 9 pts) at home."""
        table = (
            make_standing(1, 1, won=3, draw=1, goals_for=8, goals_against=2, name="Alpha"),
            make_standing(2, 2, won=3, lost=1, goals_for=7, goals_against=3, name="Bravo"),
        )
        assert table[0].points == 10
        assert table[1].points == 9

        updated = _by_id(apply_result(table, MatchResult(1, 2, 1, 0)))

        assert updated[1].played_games == 5
        assert updated[1].won == 4
        assert updated[1].points == 13
        assert updated[2].played_games == 5
        assert updated[2].lost == 2
        assert updated[2].points == 9
        assert updated[1].position == 1
        assert updated[2].position == 2

    def test_draw_gives_one_point_each(self):
        table = make_table(4)
        updated = _by_id(apply_result(table, MatchResult(3, 4, 2, 2)))
        assert updated[3].draw == 1
        assert updated[4].draw == 1
        assert updated[3].goals_for == table[2].goals_for + 2

    def test_table_is_re_sorted(self):
        table = make_table(4)
        # Bottom side (0 pts) beats the team directly above it (3 pts)
        updated = apply_result(table, MatchResult(4, 3, 5, 0))
        positions = {row.team.id: row.position for row in updated}
        assert positions[4] == 3
        assert positions[3] == 4

    def test_input_table_not_mutated(self):
        table = make_table(4)
        apply_result(table, MatchResult(1, 2, 3, 0))
        assert table == make_table(4)

    def test_missing_team_raises_and_leaves_table(self):
        table = make_table(4)
        with pytest.raises(TeamNotFound) as exc:
            apply_result(table, MatchResult(1, 99, 1, 0))
        assert exc.value.team_ids == (99,)
        assert table == make_table(4)

    def test_invariants_hold(self):
        table = make_table(6)
        for result in [MatchResult(1, 2, 2, 1), MatchResult(3, 4, 0, 0), MatchResult(6, 5, 1, 4)]:
            table = apply_result(table, result)
        _assert_row_invariants(table)


class TestOrdering:
    """points, goal difference, goals for, then name and id."""

    def test_goal_difference_breaks_points_tie(self):
        rows = [
            make_standing(1, 1, won=1, goals_for=1, goals_against=0),
            make_standing(2, 2, won=1, goals_for=3, goals_against=0),
        ]
        assert [r.team.id for r in rank_table(rows)] == [2, 1]

    def test_goals_for_breaks_difference_tie(self):
        rows = [
            make_standing(1, 1, won=1, goals_for=2, goals_against=1),
            make_standing(2, 2, won=1, goals_for=4, goals_against=3),
        ]
        assert [r.team.id for r in rank_table(rows)] == [2, 1]

    def test_name_is_final_tie_break(self):
        rows = [
            make_standing(1, 1, won=1, goals_for=1, name="zeta"),
            make_standing(2, 2, won=1, goals_for=1, name="Alpha"),
        ]
        ranked = rank_table(rows)
        assert [r.team.id for r in ranked] == [2, 1]
        assert [r.position for r in ranked] == [1, 2]

    def test_id_breaks_identical_names(self):
        rows = [make_standing(9, 1, name="Same"), make_standing(3, 2, name="Same")]
        assert [r.team.id for r in rank_table(rows)] == [3, 9]


class TestFoldResults:

    def test_order_does_not_change_final_table(self):
        results = [
            MatchResult(1, 2, 0, 1),
            MatchResult(3, 4, 2, 2),
            MatchResult(5, 6, 3, 0),
            MatchResult(2, 5, 1, 1),
        ]
        tables = {
            fold_results(make_table(6), order).table
            for order in itertools.permutations(results)
        }
        assert len(tables) == 1

    def test_unknown_team_skipped_others_applied(self):
        results = [MatchResult(1, 2, 1, 0, match_id=1), MatchResult(3, 77, 1, 0, match_id=2)]
        outcome = fold_results(make_table(4), results)
        assert [r.match_id for r in outcome.applied] == [1]
        assert [r.match_id for r in outcome.skipped] == [2]
        assert _by_id(outcome.table)[3].played_games == make_table(4)[2].played_games


class TestTableViews:

    def test_blank_table_resets_counts(self):
        blank = blank_table(make_table(4))
        assert all(row.played_games == 0 and row.points == 0 for row in blank)
        assert {row.team.id for row in blank} == {1, 2, 3, 4}

    def test_position_changes(self):
        initial = make_table(4)
        updated = apply_result(initial, MatchResult(4, 3, 5, 0))
        changes = position_changes(updated, initial)
        assert changes[4] == 1
        assert changes[3] == -1
        assert changes[1] == 0

    def test_position_change_unknown_team(self):
        changes = position_changes([make_standing(50, 1)], make_table(2))
        assert changes == {50: None}

    def test_premier_league_zones(self):
        zones = PREMIER_LEAGUE.zones
        assert zone_for_position(1, zones)["tournament"] == "Champions League"
        assert zone_for_position(6, zones)["tournament"] == "Europa League"
        assert zone_for_position(7, zones)["tournament"] == "Conference League"
        assert zone_for_position(10, zones) is None
        assert zone_for_position(19, zones)["type"] == "relegation"

    def test_zone_copy_does_not_leak(self):
        zone = zone_for_position(1, PREMIER_LEAGUE.zones)
        zone["style"] = "changed"
        assert PREMIER_LEAGUE.zones["1-5"]["style"] == "blue"

    def test_malformed_zone_keys_ignored(self):
        assert zone_for_position(3, {"x-y": {"type": "bad"}, "3": {"type": "ok"}}) == {"type": "ok"}

    def test_apply_zones_labels_rows(self):
        rows = apply_zones(make_table(20), PREMIER_LEAGUE.zones)
        assert rows[0]["zone"]["tournament"] == "Champions League"
        assert rows[9]["zone"] is None
        assert rows[19]["zone"]["type"] == "relegation"

    def test_league_without_zones(self):
        rows = apply_zones(make_table(4), CHAMPIONS_LEAGUE.zones)
        assert all("zone" not in row for row in rows)
