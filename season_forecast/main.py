"""Season forecast API - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from season_forecast.config import Settings, get_settings
from season_forecast.errors import ForecastError
from season_forecast.etl.base import DataSource
from season_forecast.etl.fixtures import FixtureFetcher
from season_forecast.etl.football_data import FootballDataProvider
from season_forecast.routes import forecast_error_handler, router
from season_forecast.session import SessionRegistry
from season_forecast.storage.repository import ForecastRepository
from season_forecast.storage.store import KeyValueStore, SqlStore, build_store
from season_forecast.utils.clock import Clock, SystemClock

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    config: Optional[Settings] = None,
    source: Optional[DataSource] = None,
    store: Optional[KeyValueStore] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """
    Build the API with its collaborators.

    Args:
        config: Settings (defaults to the environment).
        source: Data source (defaults to football-data.org).
        store: Persistent store (defaults to ``STORE_URL``).
        clock: Clock shared by every component.
    """
    config = config or get_settings()
    clock = clock or SystemClock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Starting season forecast API...")
        data_source = source if source is not None else FootballDataProvider(clock=clock)
        kv_store = store if store is not None else build_store(config.STORE_URL, clock=clock)
        repository = ForecastRepository(kv_store, clock=clock)
        fetcher = FixtureFetcher(data_source, repository, clock=clock)
        app.state.registry = SessionRegistry(fetcher, repository, clock=clock)
        try:
            yield
        finally:
            logger.info("Shutting down...")
            await data_source.close()
            if isinstance(kv_store, SqlStore):
                kv_store.close()

    app = FastAPI(
        title="Season Forecast",
        description="Matchday-by-matchday league table forecasting",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(ForecastError, forecast_error_handler)
    app.include_router(router)
    return app


app = create_app()
