"""ETL module - data source port, football-data.org client and fixture fetching."""

from season_forecast.etl.base import DataSource
from season_forecast.etl.fixtures import FixtureFetcher, presentable_matches
from season_forecast.etl.football_data import FootballDataProvider

__all__ = ["DataSource", "FixtureFetcher", "FootballDataProvider", "presentable_matches"]
