"""Competition configurations for football-data.org league codes.

League-specific facts (season length, unplayable matchdays, table zones) live
here as data so the engine never branches on a league code.
"""

from dataclasses import dataclass, field
from typing import Optional

from season_forecast.errors import UnknownLeague


# Zone templates keyed into LeagueConfig.zones by position range ("1-5", "6", ...)
UCL = {"type": "promotion", "tournament": "Champions League", "style": "blue"}
UEL = {"type": "promotion", "tournament": "Europa League", "style": "orange"}
UECL = {"type": "promotion", "tournament": "Conference League", "style": "green"}
RELEGATION_PLAYOFF = {"type": "playoff", "description": "Relegation Play-off", "style": "yellow"}
RELEGATION = {"type": "relegation", "style": "red"}


@dataclass
class LeagueConfig:
    """Competition configuration."""

    code: str
    name: str
    country: str
    max_matchday: int
    # Inclusive (first, last) ranges that are never presented for prediction
    excluded_matchdays: tuple[tuple[int, int], ...] = ()
    zones: dict[str, dict] = field(default_factory=dict)

    def is_excluded(self, matchday: int) -> bool:
        return any(first <= matchday <= last for first, last in self.excluded_matchdays)

    def is_playable(self, matchday: int) -> bool:
        """True when the matchday exists for the league and is not excluded."""
        return 1 <= matchday <= self.max_matchday and not self.is_excluded(matchday)

    @property
    def first_playable_matchday(self) -> Optional[int]:
        for matchday in range(1, self.max_matchday + 1):
            if not self.is_excluded(matchday):
                return matchday
        return None


PREMIER_LEAGUE = LeagueConfig(
    code="PL",
    name="Premier League",
    country="England",
    max_matchday=38,
    zones={"1-5": UCL, "6": UEL, "7": UECL, "18-20": RELEGATION},
)

BUNDESLIGA = LeagueConfig(
    code="BL1",
    name="Bundesliga",
    country="Germany",
    max_matchday=34,
    zones={"1-4": UCL, "5": UEL, "6": UECL, "16": RELEGATION_PLAYOFF, "17-18": RELEGATION},
)

LIGUE_1 = LeagueConfig(
    code="FL1",
    name="Ligue 1",
    country="France",
    max_matchday=34,
    zones={"1-4": UCL, "5": UEL, "6": UECL, "16": RELEGATION_PLAYOFF, "17-18": RELEGATION},
)

SERIE_A = LeagueConfig(
    code="SA",
    name="Serie A",
    country="Italy",
    max_matchday=38,
    zones={"1-4": UCL, "5": UEL, "6": UECL, "18-20": RELEGATION},
)

LA_LIGA = LeagueConfig(
    code="PD",
    name="La Liga",
    country="Spain",
    max_matchday=38,
    zones={"1-5": UCL, "6-7": UEL, "8": UECL, "18-20": RELEGATION},
)

# League phase: matchdays 1-3 were played before forecasting opened for 25/26
CHAMPIONS_LEAGUE = LeagueConfig(
    code="CL",
    name="UEFA Champions League",
    country="Europe",
    max_matchday=8,
    excluded_matchdays=((1, 3),),
)

# All leagues dictionary
LEAGUES: dict[str, LeagueConfig] = {
    league.code: league
    for league in [
        PREMIER_LEAGUE,
        BUNDESLIGA,
        LIGUE_1,
        SERIE_A,
        LA_LIGA,
        CHAMPIONS_LEAGUE,
    ]
}

ALL_LEAGUE_CODES = list(LEAGUES.keys())


def get_league(code: str) -> LeagueConfig:
    """Look up a league by code, raising UnknownLeague with the known codes."""
    try:
        return LEAGUES[code.upper()]
    except KeyError:
        raise UnknownLeague(code, ALL_LEAGUE_CODES) from None
