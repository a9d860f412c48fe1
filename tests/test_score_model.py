"""Tests for turning predictions into scorelines."""

import pytest

from season_forecast.engine.score_model import NOMINAL_SCORES, resolve_prediction
from season_forecast.errors import InvalidPrediction
from season_forecast.models import Prediction, PredictionType


class TestNominalOutcomes:
    """home / draw / away map to fixed scorelines."""

    def test_home_win(self):
        result = resolve_prediction(Prediction(1, PredictionType.HOME), 10, 20)
        assert (result.home_goals, result.away_goals) == (1, 0)
        assert result.outcome is PredictionType.HOME

    def test_away_win(self):
        result = resolve_prediction(Prediction(1, PredictionType.AWAY), 10, 20)
        assert (result.home_goals, result.away_goals) == (0, 1)
        assert result.outcome is PredictionType.AWAY

    def test_draw_has_equal_goals(self):
        result = resolve_prediction(Prediction(1, PredictionType.DRAW), 10, 20)
        assert result.home_goals == result.away_goals

    def test_result_is_tagged_with_both_teams(self):
        result = resolve_prediction(Prediction(7, PredictionType.HOME), 10, 20)
        assert result.home_team_id == 10
        assert result.away_team_id == 20
        assert result.match_id == 7

    def test_nominal_scores_never_tie_for_a_win(self):
        for kind in (PredictionType.HOME, PredictionType.AWAY):
            home, away = NOMINAL_SCORES[kind]
            assert home != away

    def test_string_type_is_accepted(self):
        """Deserialized predictions may carry the raw value."""
        result = resolve_prediction(Prediction(1, "away"), 10, 20)
        assert result.outcome is PredictionType.AWAY


class TestCustomScores:
    """custom uses the supplied goals, clamped at zero."""

    def test_custom_three_one(self):
        prediction = Prediction(1, PredictionType.CUSTOM, home_goals=3, away_goals=1)
        result = resolve_prediction(prediction, 10, 20)
        assert (result.home_goals, result.away_goals) == (3, 1)
        assert result.outcome is PredictionType.HOME

    def test_negative_goals_clamped(self):
        prediction = Prediction(1, PredictionType.CUSTOM, home_goals=-2, away_goals=2)
        result = resolve_prediction(prediction, 10, 20)
        assert (result.home_goals, result.away_goals) == (0, 2)

    def test_zero_zero_is_a_draw(self):
        prediction = Prediction(1, PredictionType.CUSTOM, home_goals=0, away_goals=0)
        assert resolve_prediction(prediction, 10, 20).outcome is PredictionType.DRAW

    @pytest.mark.parametrize("home,away", [(None, 1), (2, None), (None, None)])
    def test_missing_goals_rejected(self, home, away):
        prediction = Prediction(5, PredictionType.CUSTOM, home_goals=home, away_goals=away)
        with pytest.raises(InvalidPrediction) as exc:
            resolve_prediction(prediction, 10, 20)
        assert exc.value.match_id == 5

    def test_non_integer_goals_rejected(self):
        prediction = Prediction(5, PredictionType.CUSTOM, home_goals="3", away_goals=1)
        with pytest.raises(InvalidPrediction):
            resolve_prediction(prediction, 10, 20)

    def test_boolean_goals_rejected(self):
        prediction = Prediction(5, PredictionType.CUSTOM, home_goals=True, away_goals=0)
        with pytest.raises(InvalidPrediction):
            resolve_prediction(prediction, 10, 20)

    def test_goals_ignored_for_nominal_types(self):
        prediction = Prediction(1, PredictionType.DRAW, home_goals=4, away_goals=0)
        result = resolve_prediction(prediction, 10, 20)
        assert (result.home_goals, result.away_goals) == (0, 0)


class TestUnknownType:

    def test_unknown_type_rejected(self):
        with pytest.raises(InvalidPrediction, match="unknown type"):
            resolve_prediction(Prediction(1, "walkover"), 10, 20)
