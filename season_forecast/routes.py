"""Forecast routes: sessions, standings, cache maintenance and metrics."""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from season_forecast.errors import (
    DataSourceError,
    ForecastError,
    InvalidPrediction,
    MatchdayNotAvailable,
    NoActiveSession,
    NotFound,
    RateLimited,
    SeasonFinished,
    StaleSessionWrite,
    SubmissionInProgress,
    UnknownLeague,
    UpstreamTimeout,
)
from season_forecast.leagues import get_league
from season_forecast.models import AutoPolicy, Prediction, PredictionType
from season_forecast.session import SessionRegistry, SimulationSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["forecast"])


class StartSessionRequest(BaseModel):
    start_matchday: Optional[int] = Field(default=None, ge=1)
    race_mode: bool = False
    tracked_team_ids: list[int] = Field(default_factory=list)
    policy: Optional[AutoPolicy] = None


class PredictionIn(BaseModel):
    match_id: int
    type: PredictionType
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None

    def to_prediction(self) -> Prediction:
        return Prediction(
            match_id=self.match_id,
            type=self.type,
            home_goals=self.home_goals,
            away_goals=self.away_goals,
        )


class SubmitRequest(BaseModel):
    predictions: list[PredictionIn] = Field(default_factory=list)


def error_status(exc: ForecastError) -> int:
    """HTTP status for a forecast error."""
    if isinstance(exc, RateLimited):
        return 429
    if isinstance(exc, UpstreamTimeout):
        return 504
    if isinstance(exc, (NotFound, NoActiveSession, MatchdayNotAvailable, UnknownLeague)):
        return 404
    if isinstance(exc, DataSourceError):
        return 502
    if isinstance(exc, InvalidPrediction):
        return 422
    if isinstance(exc, (SubmissionInProgress, StaleSessionWrite, SeasonFinished)):
        return 409
    return 500


async def forecast_error_handler(request: Request, exc: ForecastError) -> JSONResponse:
    status_code = error_status(exc)
    content = {"detail": str(exc), "error": type(exc).__name__}
    headers = None
    if isinstance(exc, DataSourceError):
        content["retryable"] = exc.retryable
    if isinstance(exc, RateLimited) and exc.retry_after is not None:
        headers = {"Retry-After": str(int(exc.retry_after))}
    if status_code >= 500:
        logger.error(f"[API] {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def _session(request: Request, league: str) -> SimulationSession:
    return _registry(request).get(league)


@router.post("/sessions/{league}")
async def start_session(league: str, body: StartSessionRequest, request: Request):
    """Start a new forecast for a league (drops the previous one)."""
    session = _session(request, league)
    try:
        state = await session.start_session(
            league,
            start_matchday=body.start_matchday,
            race_mode=body.race_mode,
            tracked_team_ids=body.tracked_team_ids,
            policy=body.policy.value if body.policy else None,
        )
    except ValueError as e:
        return JSONResponse(status_code=422, content={"detail": str(e)})
    return state.to_dict()


@router.get("/sessions/{league}/matchday")
async def present_matchday(league: str, request: Request):
    view = await _session(request, league).present_matchday()
    return view.to_dict()


@router.post("/sessions/{league}/predictions")
async def submit_predictions(league: str, body: SubmitRequest, request: Request):
    """Submit predictions for the presented matchday. Missing fixtures count as draws."""
    result = await _session(request, league).submit_predictions(
        [p.to_prediction() for p in body.predictions]
    )
    return result.to_dict()


@router.post("/sessions/{league}/skip")
async def skip_matchday(league: str, request: Request):
    """Move past a matchday that has no fixtures left to predict."""
    state = _session(request, league).skip_matchday()
    return state.to_dict()


@router.get("/sessions/{league}/standings")
async def view_standings(league: str, request: Request, matchday: Optional[int] = None):
    view = await _session(request, league).view_standings(matchday)
    return view.to_dict()


@router.get("/sessions/{league}/summary")
async def race_summary(league: str, request: Request):
    session = _session(request, league)
    return {"league": get_league(league).code, "race_mode": session.race_mode, "teams": session.race_summary()}


@router.delete("/sessions/{league}")
async def reset_session(league: str, request: Request):
    _session(request, league).reset()
    return {"league": get_league(league).code, "status": "reset"}


@router.post("/cache/refresh/{league}")
async def refresh_league(league: str, request: Request):
    """Drop cached league data and refetch it from the provider."""
    code = get_league(league).code
    data = await _registry(request).fetcher.refresh_league(code)
    return {
        "league": code,
        "current_matchday": data.current_matchday,
        "teams": len(data.standings),
        "fetched_at": data.fetched_at,
    }


@router.get("/cache/status/{league}")
async def cache_status(league: str, request: Request):
    config = get_league(league)
    return _registry(request).fetcher.cache_status(config.code, config.max_matchday)


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics for provider traffic, fixture cache and submissions."""
    try:
        from season_forecast.telemetry import get_metrics_text
        content, content_type = get_metrics_text()
        return PlainTextResponse(content=content, media_type=content_type)
    except Exception as e:
        logger.error(f"Failed to generate metrics: {e}")
        return PlainTextResponse(
            content=f"# Error generating metrics: {e}\n",
            status_code=500,
            media_type="text/plain",
        )
