"""
Key scheme for the persistent store.

Cached upstream data (each blob carries ``fetched_at``):
    {league}                      league data: official table + current matchday
    {league}:{matchday}:all       every fixture of the matchday as reported upstream

Forecast state:
    {league}:{matchday}           fixtures last presented for the matchday
    {league}:completed_matchdays  submitted matchday numbers
    {league}:completed_matches    ids of fixtures already predicted
    {league}:predictions          user predictions with their fixtures
    {league}:snapshots            predicted table after each submitted matchday
    {league}:session              current matchday, predicted table, race settings

League codes are upper-cased so "pl" and "PL" share keys.
"""


def _code(league: str) -> str:
    return league.upper()


def league_data_key(league: str) -> str:
    return _code(league)


def fixtures_key(league: str, matchday: int) -> str:
    return f"{_code(league)}:{int(matchday)}:all"


def presented_key(league: str, matchday: int) -> str:
    return f"{_code(league)}:{int(matchday)}"


def completed_matchdays_key(league: str) -> str:
    return f"{_code(league)}:completed_matchdays"


def completed_matches_key(league: str) -> str:
    return f"{_code(league)}:completed_matches"


def predictions_key(league: str) -> str:
    return f"{_code(league)}:predictions"


def snapshots_key(league: str) -> str:
    return f"{_code(league)}:snapshots"


def session_key(league: str) -> str:
    return f"{_code(league)}:session"


def forecast_state_keys(league: str, max_matchday: int) -> list[str]:
    """Every key a reset must clear (cached upstream data is kept)."""
    keys = [
        completed_matchdays_key(league),
        completed_matches_key(league),
        predictions_key(league),
        snapshots_key(league),
        session_key(league),
    ]
    keys.extend(presented_key(league, md) for md in range(1, max_matchday + 1))
    return keys
