"""
Rating Scheme Base

Shared behavior of the rating schemes: opponent counting, validity checks and
parameter selection by team-size category. A scheme is built for one match and
queried once per (player, opponent) pair across team boundaries.
"""

from typing import Sequence

from lobby_results.config import TEAM_MODES, TEAM_SIZE_CATEGORY
from lobby_results.errors import CalculationError
from lobby_results.models import Player, RatingSettings, Team


class RatingScheme:
    """
    Computes a signed rating delta for one player against one opponent.

    Subclasses implement compute_opponent_delta() and may override
    adjust_final_delta() and is_valid().
    """

    def __init__(self, teams: Sequence[Team], lobby_type: str, settings: RatingSettings) -> None:
        self.teams = tuple(teams)
        self.lobby_type = lobby_type
        self.settings = settings
        self.is_team_mode = lobby_type in TEAM_MODES
        self.category = TEAM_SIZE_CATEGORY.get(lobby_type)
        self.player_count = sum(len(team.players) for team in self.teams)
        self._team_sizes = {
            player.name: len(team.players)
            for team in self.teams
            for player in team.players
        }

    def compute_opponent_delta(self, player: Player, player_team: Team, opponent: Player, opponent_team: Team) -> float:
        raise NotImplementedError

    def adjust_final_delta(self, player: Player, delta: float) -> float:
        """Adjust the delta summed over all opponents (unchanged by default)."""
        return delta

    def is_valid(self) -> bool:
        """Every player needs an opponent and the match needs at least two players."""
        if any(self.opponent_count(player) == 0 for team in self.teams for player in team.players):
            return False
        return self.player_count >= 2

    def opponent_count(self, player: Player) -> int:
        """
        Count the opponents of a player.

        In team mode these are the players of every other team, otherwise
        everybody else in the match.

        Raises:
            CalculationError: If the player is not part of the match
        """
        if player.name not in self._team_sizes:
            raise CalculationError(f"Could not get the team of player {player.name!r}")
        if self.is_team_mode:
            return self.player_count - self._team_sizes[player.name]
        return self.player_count - 1

    def match_points(self, player: Player, player_team: Team, opponent: Player, opponent_team: Team) -> tuple[int, int]:
        """Points compared to decide the pair outcome: team points in team mode, player points otherwise."""
        if self.is_team_mode:
            return player_team.points, opponent_team.points
        return player.points, opponent.points

    def parameter(self, values: Sequence[float]) -> float | None:
        """Pick the value for this lobby's team-size category, or None if absent."""
        if self.category is None or self.category >= len(values):
            return None
        return values[self.category]
