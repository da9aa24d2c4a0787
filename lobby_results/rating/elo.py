"""
Elo Rating Scheme

Per opponent pair:
    K = scaling factor / number of opponents of the player
    S = 1 / 0.5 / 0 for a win / tie / loss on match points
    E = 1 / (1 + 10 ** ((opponent rating - player rating) / 400))
    delta = K * (S - E)

Contributions are summed over all opponents.
"""

from lobby_results.config import ELO_SCALE
from lobby_results.models import Player, Team
from lobby_results.rating.base import RatingScheme


def expected_score(rating_a, rating_b):
    """Calculate expected probability of player A beating player B"""
    return 1 / (1 + 10 ** ((rating_b - rating_a) / ELO_SCALE))


def actual_score(points, opponent_points):
    if points > opponent_points:
        return 1.0
    if points == opponent_points:
        return 0.5
    return 0.0


class EloRatingScheme(RatingScheme):
    def __init__(self, teams, lobby_type, settings):
        super().__init__(teams, lobby_type, settings)
        self.scaling_factor = self.parameter(settings.scaling_factors)

    def compute_opponent_delta(self, player: Player, player_team: Team, opponent: Player, opponent_team: Team) -> float:
        points, opponent_points = self.match_points(player, player_team, opponent, opponent_team)
        k = self.scaling_factor / self.opponent_count(player)
        s = actual_score(points, opponent_points)
        e = expected_score(player.board_rating, opponent.board_rating)
        return k * (s - e)

    def is_valid(self) -> bool:
        return super().is_valid() and self.scaling_factor is not None
