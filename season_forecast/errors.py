"""Error kinds raised by the forecasting engine and its collaborators.

Data source failures carry a ``retryable`` flag so callers can decide between
retrying (rate limit, timeout, upstream 5xx) and abandoning (not found).
"""

from typing import Iterable, Optional


class ForecastError(Exception):
    """Base class for all season forecast errors."""


# =============================================================================
# DATA SOURCE
# =============================================================================


class DataSourceError(ForecastError):
    """Raised when the upstream sports-data provider cannot serve a request."""

    retryable: bool = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RateLimited(DataSourceError):
    """Upstream answered 429 after all retries were spent."""

    retryable = True

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


class NotFound(DataSourceError):
    """Requested league or matchday does not exist upstream."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class UpstreamServerError(DataSourceError):
    """Upstream failed with a 5xx or an unusable payload."""

    retryable = True


class UpstreamTimeout(DataSourceError):
    """A fetch did not complete within its bounded timeout."""

    retryable = True


# =============================================================================
# SIMULATION
# =============================================================================


class InvalidPrediction(ForecastError):
    """A prediction cannot be turned into a result."""

    def __init__(self, match_id: Optional[int], reason: str):
        self.match_id = match_id
        self.reason = reason
        super().__init__(f"Invalid prediction for match {match_id}: {reason}")


class TeamNotFound(ForecastError):
    """A result references a team that is not in the table."""

    def __init__(self, team_ids: Iterable[int]):
        self.team_ids = tuple(team_ids)
        super().__init__(f"Teams not in table: {list(self.team_ids)}")


class StaleSessionWrite(ForecastError):
    """A fetch completed after the session it was started for moved on."""

    def __init__(self, expected_token: str, current_token: Optional[str]):
        self.expected_token = expected_token
        self.current_token = current_token
        super().__init__(
            f"Session changed while fetching (started={expected_token}, now={current_token})"
        )


class NoActiveSession(ForecastError):
    """An operation needs a started session."""


class SubmissionInProgress(ForecastError):
    """Another submission for the same session has not finished yet."""


class SeasonFinished(ForecastError):
    """Every matchday of the season has already been submitted."""


class MatchdayNotAvailable(ForecastError):
    """Standings were requested for a matchday that has no table yet."""

    def __init__(self, matchday: int, reason: str):
        self.matchday = matchday
        super().__init__(f"No table for matchday {matchday}: {reason}")


class UnknownLeague(ForecastError, KeyError):
    """League code has no configuration."""

    def __init__(self, code: str, known: Iterable[str]):
        self.code = code
        super().__init__(f"Unknown league '{code}'. Available: {list(known)}")

    def __str__(self) -> str:
        return self.args[0]
