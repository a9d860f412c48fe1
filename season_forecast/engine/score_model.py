"""Turn a user prediction into a concrete scoreline."""

from season_forecast.errors import InvalidPrediction
from season_forecast.models import MatchResult, Prediction, PredictionType

# Nominal scorelines for the one-click outcomes
NOMINAL_SCORES: dict[PredictionType, tuple[int, int]] = {
    PredictionType.HOME: (1, 0),
    PredictionType.DRAW: (0, 0),
    PredictionType.AWAY: (0, 1),
}


def _custom_goals(prediction: Prediction) -> tuple[int, int]:
    goals = []
    for side, value in (("home", prediction.home_goals), ("away", prediction.away_goals)):
        if value is None:
            raise InvalidPrediction(prediction.match_id, f"custom prediction without {side} goals")
        # bool is an int subclass; "True" goals is a caller bug
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidPrediction(prediction.match_id, f"{side} goals must be an integer, got {value!r}")
        goals.append(max(0, value))
    return goals[0], goals[1]


def resolve_prediction(prediction: Prediction, home_team_id: int, away_team_id: int) -> MatchResult:
    """
    Resolve a prediction into goals for each side.

    Args:
        prediction: The user's pick for the fixture.
        home_team_id: Team playing at home.
        away_team_id: Team playing away.

    Returns:
        MatchResult with non-negative goals. ``home``/``draw``/``away`` map to
        1-0 / 0-0 / 0-1; ``custom`` uses the supplied goals clamped to >= 0.

    Raises:
        InvalidPrediction: ``custom`` without both goal counts, or an unknown type.
    """
    try:
        kind = PredictionType(prediction.type)
    except ValueError:
        raise InvalidPrediction(prediction.match_id, f"unknown type {prediction.type!r}") from None

    if kind is PredictionType.CUSTOM:
        home_goals, away_goals = _custom_goals(prediction)
    else:
        home_goals, away_goals = NOMINAL_SCORES[kind]

    return MatchResult(
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        home_goals=home_goals,
        away_goals=away_goals,
        match_id=prediction.match_id,
    )
