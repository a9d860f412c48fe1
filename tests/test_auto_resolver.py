"""Tests for the position-based auto resolver used in race mode."""

import pytest

from season_forecast.engine.auto_resolver import auto_prediction
from season_forecast.models import AutoPolicy, PredictionType

MIRROR = {
    PredictionType.HOME: PredictionType.AWAY,
    PredictionType.AWAY: PredictionType.HOME,
    PredictionType.DRAW: PredictionType.DRAW,
}


class TestAutoByPosition:
    """Within two places: draw. Otherwise the higher-placed side wins."""

    @pytest.mark.parametrize("home,away", [(1, 1), (1, 2), (1, 3), (10, 8), (19, 20)])
    def test_close_positions_draw(self, home, away):
        assert auto_prediction(1, home, away).type is PredictionType.DRAW

    def test_better_home_side_wins(self):
        """3rd vs 10th: gap 7, home side higher."""
        assert auto_prediction(1, 3, 10).type is PredictionType.HOME

    def test_better_away_side_wins(self):
        assert auto_prediction(1, 10, 3).type is PredictionType.AWAY

    def test_gap_of_three_is_decisive(self):
        assert auto_prediction(1, 4, 7).type is PredictionType.HOME

    def test_mirrored_fixture_mirrors_result(self):
        for home in range(1, 21):
            for away in range(1, 21):
                forward = auto_prediction(1, home, away).type
                backward = auto_prediction(1, away, home).type
                assert backward is MIRROR[forward], (home, away)

    def test_deterministic(self):
        assert auto_prediction(5, 2, 15) == auto_prediction(5, 2, 15)

    def test_prediction_carries_match_id(self):
        assert auto_prediction(42, 1, 20).match_id == 42


class TestForceDraw:

    def test_always_draw(self):
        for home, away in [(1, 20), (20, 1), (5, 5)]:
            prediction = auto_prediction(1, home, away, AutoPolicy.FORCE_DRAW)
            assert prediction.type is PredictionType.DRAW

    def test_policy_accepts_raw_value(self):
        assert auto_prediction(1, 1, 20, "force-draw").type is PredictionType.DRAW

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            auto_prediction(1, 1, 20, "coin-flip")
