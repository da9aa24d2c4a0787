"""
Tests for the rating schemes.
"""

import pytest

from lobby_results.config import RACE_ITEMS_DUOS, RACE_ITEMS_FFA, RATING_SCHEME_ELO, RATING_SCHEME_MMR
from lobby_results.errors import CalculationError
from lobby_results.models import Player, RatingSettings, Team
from lobby_results.rating.elo import EloRatingScheme, actual_score, expected_score
from lobby_results.rating.mmr import MmrRatingScheme

ELO = RatingSettings(scheme=RATING_SCHEME_ELO, scaling_factors=(32, 40, 48, 56))
MMR = RatingSettings(scheme=RATING_SCHEME_MMR, scaling_factors=(2, 2, 2, 2), baselines=(10, 10, 10, 10))


def solo_teams(*players):
    """One team per (name, points, rating) tuple."""
    return tuple(
        Team(name=name, players=(Player(name=name, scores=(points,), board_rating=rating),))
        for name, points, rating in players
    )


def duo_teams():
    red = Team(name="Red", players=(
        Player(name="Alice", scores=(30,), board_rating=1000),
        Player(name="Bob", scores=(10,), board_rating=1000),
    ))
    blue = Team(name="Blue", players=(
        Player(name="Carol", scores=(15,), board_rating=1000),
        Player(name="Dave", scores=(15,), board_rating=1000),
    ))
    return red, blue


class TestExpectedScore:
    """Tests for Elo expected score."""

    def test_equal_ratings(self):
        assert expected_score(1000, 1000) == pytest.approx(0.5)

    def test_400_points_is_ten_to_one(self):
        assert expected_score(1400, 1000) == pytest.approx(10 / 11)

    def test_symmetric(self):
        assert expected_score(1200, 1000) + expected_score(1000, 1200) == pytest.approx(1.0)


class TestActualScore:
    """Tests for Elo actual score."""

    def test_win(self):
        assert actual_score(10, 5) == 1.0

    def test_tie(self):
        assert actual_score(5, 5) == 0.5

    def test_loss(self):
        assert actual_score(5, 10) == 0.0


class TestEloRatingScheme:
    """Tests for EloRatingScheme."""

    def test_one_on_one_is_zero_sum(self):
        teams = solo_teams(("Alice", 10, 1100), ("Bob", 5, 1000))
        scheme = EloRatingScheme(teams, RACE_ITEMS_FFA, ELO)
        alice, bob = teams[0].players[0], teams[1].players[0]
        gain = scheme.compute_opponent_delta(alice, teams[0], bob, teams[1])
        loss = scheme.compute_opponent_delta(bob, teams[1], alice, teams[0])
        assert gain > 0
        assert gain + loss == pytest.approx(0.0)

    def test_equal_ratings_win_gives_half_k(self):
        teams = solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000))
        scheme = EloRatingScheme(teams, RACE_ITEMS_FFA, ELO)
        delta = scheme.compute_opponent_delta(teams[0].players[0], teams[0], teams[1].players[0], teams[1])
        assert delta == pytest.approx(16.0)

    def test_k_split_between_opponents(self):
        teams = solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000), ("Carol", 1, 1000))
        scheme = EloRatingScheme(teams, RACE_ITEMS_FFA, ELO)
        delta = scheme.compute_opponent_delta(teams[0].players[0], teams[0], teams[1].players[0], teams[1])
        assert delta == pytest.approx(8.0)

    def test_team_mode_uses_team_points_and_category(self):
        red, blue = duo_teams()
        scheme = EloRatingScheme((red, blue), RACE_ITEMS_DUOS, ELO)
        assert scheme.scaling_factor == 40
        bob, carol = red.players[1], blue.players[0]
        # Bob scored less than Carol but his team won
        delta = scheme.compute_opponent_delta(bob, red, carol, blue)
        assert delta == pytest.approx(40 / 2 * 0.5)

    def test_invalid_without_scaling_factor(self):
        teams = solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000))
        scheme = EloRatingScheme(teams, RACE_ITEMS_FFA, RatingSettings(scheme=RATING_SCHEME_ELO))
        assert not scheme.is_valid()

    def test_invalid_with_single_team(self):
        red, _ = duo_teams()
        scheme = EloRatingScheme((red,), RACE_ITEMS_DUOS, ELO)
        assert not scheme.is_valid()


class TestMmrRatingScheme:
    """Tests for MmrRatingScheme."""

    def test_equal_ratings_win(self):
        teams = solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000))
        scheme = MmrRatingScheme(teams, RACE_ITEMS_FFA, MMR)
        alice, bob = teams[0].players[0], teams[1].players[0]
        assert scheme.compute_opponent_delta(alice, teams[0], bob, teams[1]) == pytest.approx(11.0)
        assert scheme.compute_opponent_delta(bob, teams[1], alice, teams[0]) == pytest.approx(-11.0)

    def test_upset_win_is_worth_more(self):
        scheme = MmrRatingScheme(solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000)), RACE_ITEMS_FFA, MMR)
        assert scheme.win_delta(1000, 2000) > scheme.win_delta(2000, 1000)

    def test_difference_floor(self):
        scheme = MmrRatingScheme(solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000)), RACE_ITEMS_FFA, MMR)
        assert scheme.win_delta(50000, 0) == pytest.approx(1 + 10 * (1 - 9997 / 9998) ** 2)

    def test_tie_favors_lower_rated(self):
        teams = solo_teams(("Alice", 5, 1000), ("Bob", 5, 2000))
        scheme = MmrRatingScheme(teams, RACE_ITEMS_FFA, MMR)
        alice, bob = teams[0].players[0], teams[1].players[0]
        low = scheme.compute_opponent_delta(alice, teams[0], bob, teams[1])
        high = scheme.compute_opponent_delta(bob, teams[1], alice, teams[0])
        expected = 1.5 * 2 * 11 * (1000 / 9998) ** (4 / 3)
        assert low == pytest.approx(expected)
        assert high == pytest.approx(-expected)

    def test_tie_between_equal_ratings(self):
        teams = solo_teams(("Alice", 5, 1000), ("Bob", 5, 1000))
        scheme = MmrRatingScheme(teams, RACE_ITEMS_FFA, MMR)
        assert scheme.compute_opponent_delta(teams[0].players[0], teams[0], teams[1].players[0], teams[1]) == 0

    def test_final_delta_averaged_over_opponents(self):
        teams = solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000), ("Carol", 1, 1000))
        scheme = MmrRatingScheme(teams, RACE_ITEMS_FFA, MMR)
        assert scheme.adjust_final_delta(teams[0].players[0], 22.0) == pytest.approx(11.0)

    def test_invalid_without_baseline(self):
        settings = RatingSettings(scheme=RATING_SCHEME_MMR, scaling_factors=(2,))
        scheme = MmrRatingScheme(solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000)), RACE_ITEMS_FFA, settings)
        assert not scheme.is_valid()


class TestOpponentCount:
    """Tests for RatingScheme.opponent_count."""

    def test_team_mode(self):
        red, blue = duo_teams()
        scheme = EloRatingScheme((red, blue), RACE_ITEMS_DUOS, ELO)
        assert scheme.opponent_count(red.players[0]) == 2

    def test_non_team_mode(self):
        teams = solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000), ("Carol", 1, 1000))
        scheme = EloRatingScheme(teams, RACE_ITEMS_FFA, ELO)
        assert scheme.opponent_count(teams[0].players[0]) == 2

    def test_unknown_player(self):
        scheme = EloRatingScheme(solo_teams(("Alice", 10, 1000), ("Bob", 5, 1000)), RACE_ITEMS_FFA, ELO)
        with pytest.raises(CalculationError):
            scheme.opponent_count(Player(name="Zed"))
