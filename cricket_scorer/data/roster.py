"""
Roster service interface.

Provides the players eligible to bat and bowl for each team. Includes a
static implementation that falls back to placeholder names when a team
has no roster data, which keeps demos and tests self-contained.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_SQUAD_SIZE = 11


def placeholder_batters(team: str, count: int = DEFAULT_SQUAD_SIZE) -> list[str]:
    return [f"{team} Batsman {n}" for n in range(1, count + 1)]


def placeholder_bowlers(team: str, count: int = DEFAULT_SQUAD_SIZE) -> list[str]:
    return [f"{team} Bowler {n}" for n in range(1, count + 1)]


class RosterService(ABC):
    """Abstract base class for roster lookups."""

    @abstractmethod
    def batting_roster(self, team: str, inning: int) -> list[str]:
        """Ordered player names who may bat for ``team`` in ``inning``."""

    @abstractmethod
    def fielding_roster(self, team: str, inning: int) -> list[str]:
        """Ordered player names who may bowl for ``team`` in ``inning``."""


class StaticRosterService(RosterService):
    """In-memory rosters keyed by team name.

    Teams without roster data get synthetic ``"{Team} Batsman N"`` and
    ``"{Team} Bowler N"`` names.
    """

    def __init__(
        self,
        players_by_team: Optional[dict[str, list[str]]] = None,
        squad_size: int = DEFAULT_SQUAD_SIZE,
    ):
        self._players = {
            team: list(players) for team, players in (players_by_team or {}).items()
        }
        self._squad_size = squad_size

    def set_players(self, team: str, players: list[str]) -> None:
        self._players[team] = list(players)

    def batting_roster(self, team: str, inning: int) -> list[str]:
        players = self._players.get(team)
        if not players:
            logger.debug("No roster for %s, using placeholder batters", team)
            return placeholder_batters(team, self._squad_size)
        return list(players)

    def fielding_roster(self, team: str, inning: int) -> list[str]:
        players = self._players.get(team)
        if not players:
            logger.debug("No roster for %s, using placeholder bowlers", team)
            return placeholder_bowlers(team, self._squad_size)
        return list(players)
