"""
MMR Rating Scheme

A decisive pair moves both sides by

    1 + baseline * (1 + max(-9997, loser rating - winner rating) / 9998) ** scaling factor

(positive for the winner, negative for the loser). A tie moves them by

    1.5 * scaling factor * (baseline + 1) * |max(-9997, rating difference) / 9998| ** (4/3)

in favor of the lower rated side. The sum over all opponents is divided by
the number of opponents, turning points earned from N opponents into one
per-match delta.
"""

from lobby_results.config import MMR_DIFF_FLOOR, MMR_DIFF_SCALE
from lobby_results.models import Player, Team
from lobby_results.rating.base import RatingScheme


class MmrRatingScheme(RatingScheme):
    def __init__(self, teams, lobby_type, settings):
        super().__init__(teams, lobby_type, settings)
        self.baseline = self.parameter(settings.baselines)
        self.scaling_factor = self.parameter(settings.scaling_factors)

    def compute_opponent_delta(self, player: Player, player_team: Team, opponent: Player, opponent_team: Team) -> float:
        points, opponent_points = self.match_points(player, player_team, opponent, opponent_team)

        if points == opponent_points:
            # the lower rated side was the underdog, a tie counts in its favor
            sign = 1 if player.board_rating < opponent.board_rating else -1
            return sign * self.tie_delta(player.board_rating, opponent.board_rating)

        if points > opponent_points:
            return self.win_delta(player.board_rating, opponent.board_rating)
        return -self.win_delta(opponent.board_rating, player.board_rating)

    def win_delta(self, winner_rating: float, loser_rating: float) -> float:
        difference = max(MMR_DIFF_FLOOR, loser_rating - winner_rating)
        return 1 + self.baseline * (1 + difference / MMR_DIFF_SCALE) ** self.scaling_factor

    def tie_delta(self, rating: float, opponent_rating: float) -> float:
        ratio = max(MMR_DIFF_FLOOR, rating - opponent_rating) / MMR_DIFF_SCALE
        return 1.5 * self.scaling_factor * (self.baseline + 1) * ((ratio ** 2) ** (1 / 3)) ** 2

    def adjust_final_delta(self, player: Player, delta: float) -> float:
        return delta / self.opponent_count(player)

    def is_valid(self) -> bool:
        return super().is_valid() and self.baseline is not None and self.scaling_factor is not None
