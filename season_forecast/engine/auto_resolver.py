"""Deterministic picks for fixtures nobody predicted (race mode).

The position heuristic is a fixed rule, not a forecast: teams within two
places of each other draw, otherwise the higher-placed team wins.
"""

from season_forecast.models import AutoPolicy, Prediction, PredictionType

# Largest position gap that still resolves as a draw
DRAW_POSITION_GAP = 2


def auto_prediction(
    match_id: int,
    home_position: int,
    away_position: int,
    policy: AutoPolicy = AutoPolicy.AUTO_BY_POSITION,
) -> Prediction:
    """
    Derive a prediction from the two teams' current table positions.

    Args:
        match_id: Fixture the prediction is for.
        home_position: Current position of the home side (1 = top).
        away_position: Current position of the away side.
        policy: ``auto-by-position`` or ``force-draw``.

    Returns:
        A ``home``/``draw``/``away`` Prediction. Swapping the sides mirrors the result.
    """
    policy = AutoPolicy(policy)
    if policy is AutoPolicy.FORCE_DRAW:
        return Prediction(match_id=match_id, type=PredictionType.DRAW)

    if abs(home_position - away_position) <= DRAW_POSITION_GAP:
        kind = PredictionType.DRAW
    elif home_position < away_position:
        kind = PredictionType.HOME
    else:
        kind = PredictionType.AWAY
    return Prediction(match_id=match_id, type=kind)
