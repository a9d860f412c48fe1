"""Pytest fixtures shared by the forecast tests."""

import pytest

from season_forecast.etl.fixtures import FixtureFetcher
from season_forecast.session import SimulationSession
from season_forecast.storage.repository import ForecastRepository
from season_forecast.storage.store import MemoryStore
from season_forecast.utils.clock import FixedClock

from tests.helpers import NOW, FakeSource, make_table


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repository(store, clock):
    return ForecastRepository(store, clock=clock)


@pytest.fixture
def source():
    return FakeSource(standings=make_table(10), current_matchday=1)


@pytest.fixture
def fetcher(source, repository, clock):
    return FixtureFetcher(
        source,
        repository,
        clock=clock,
        fixture_ttl=600,
        league_ttl=600,
        results_ttl=600,
        fetch_timeout=1.0,
    )


@pytest.fixture
def session(fetcher, repository, clock):
    return SimulationSession(
        fetcher,
        repository,
        clock=clock,
        lookahead=3,
        default_policy="auto-by-position",
    )
