"""Abstract base class for sports-data sources."""

from abc import ABC, abstractmethod

from season_forecast.models import LeagueData, Match, Standing


class DataSource(ABC):
    """Read-only port to a provider of tables and fixtures.

    Every method may raise ``RateLimited``, ``NotFound``,
    ``UpstreamServerError`` or ``UpstreamTimeout``. Failures are never turned
    into empty results.
    """

    @abstractmethod
    async def get_standings(self, league: str) -> tuple[Standing, ...]:
        """
        Fetch the official table.

        Args:
            league: Competition code ("PL", "BL1", ...).

        Returns:
            Table rows ordered by position.
        """
        pass

    @abstractmethod
    async def get_current_matchday(self, league: str) -> int:
        """Matchday the provider considers current for the league."""
        pass

    @abstractmethod
    async def get_matches(self, league: str, matchday: int) -> list[Match]:
        """
        Fetch every fixture of one matchday.

        Args:
            league: Competition code.
            matchday: 1-based matchday number.

        Returns:
            List of Match objects, finished or not.
        """
        pass

    async def get_finished_matches(self, league: str, through_matchday: int) -> list[Match]:
        """
        Finished fixtures of matchdays 1..through_matchday.

        Default walks the matchdays one request at a time; providers with a
        status filter should override it.
        """
        finished: list[Match] = []
        for matchday in range(1, through_matchday + 1):
            finished.extend(m for m in await self.get_matches(league, matchday) if m.is_finished)
        return finished

    async def get_league_data(self, league: str) -> LeagueData:
        """Official table and current matchday in one call."""
        standings = await self.get_standings(league)
        current = await self.get_current_matchday(league)
        return LeagueData(standings=standings, current_matchday=current)

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass
