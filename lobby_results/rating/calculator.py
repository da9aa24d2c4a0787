"""
Match Calculator

This module turns one match into a ranked result set:
- builds the board's rating scheme and checks it can score the match
- sums per-opponent deltas for every player, optionally averaged per team
- clamps final ratings to the board's minimum rating and looks up tiers
- shapes results of matches already scored on the remote board
- folds result sets into a simulated board snapshot (ratings and rankings)

Usage:
    from lobby_results.rating.calculator import MatchCalculator
    results = MatchCalculator(match, settings, board.tiers).calculate()
"""

import statistics
from dataclasses import asdict, replace
from typing import Sequence

import pandas as pd

from lobby_results.config import RATING_SCHEME_ELO, RATING_SCHEME_MMR
from lobby_results.errors import CalculationError
from lobby_results.models import (
    BOARD_PLAYER_COLUMNS,
    BoardTier,
    Match,
    MatchResult,
    RatingSettings,
    RatingUpdate,
    Team,
)
from lobby_results.rating.base import RatingScheme
from lobby_results.rating.elo import EloRatingScheme
from lobby_results.rating.mmr import MmrRatingScheme
from lobby_results.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

RATING_SCHEMES = {
    RATING_SCHEME_ELO: EloRatingScheme,
    RATING_SCHEME_MMR: MmrRatingScheme,
}

RESULT_COLUMNS = [
    'name', 'team', 'team_position', 'in_team_position', 'position',
    'original_rating', 'delta', 'final_rating', 'original_tier', 'final_tier',
    'original_ranking', 'final_ranking',
]


def get_rating_scheme(teams: Sequence[Team], lobby_type: str, settings: RatingSettings) -> RatingScheme | None:
    """Build the rating scheme named by the settings, or None if it is not supported."""
    scheme_class = RATING_SCHEMES.get(settings.scheme)
    if scheme_class is None:
        return None
    return scheme_class(teams, lobby_type, settings)


# --- Tiers ---
def get_lowest_tier(tiers: Sequence[BoardTier]) -> BoardTier | None:
    if not tiers:
        return None
    return min(tiers, key=lambda tier: tier.lower_bound)


def get_tier_by_rating(tiers: Sequence[BoardTier], rating: float) -> BoardTier | None:
    """
    Return the highest tier whose lower bound the rating meets.

    Ratings below every bound fall into the lowest tier.
    """
    found = None
    for tier in sorted(tiers, key=lambda tier: tier.lower_bound):
        if rating >= tier.lower_bound:
            found = tier
        else:
            break
    return found or get_lowest_tier(tiers)


def get_tier_name(tiers: Sequence[BoardTier], rating: float) -> str | None:
    tier = get_tier_by_rating(tiers, rating)
    return tier.name if tier else None


def _optional_int(value) -> int | None:
    if value is None or pd.isna(value):
        return None
    return int(value)


def sort_results(results: list[MatchResult], teams: Sequence[Team], is_team_mode: bool) -> dict[str, MatchResult]:
    """
    Order results by team position, then by position inside the team.

    In team mode, teams sharing a position keep their match order.
    """
    team_index = {team.name: i for i, team in enumerate(teams)}

    def sort_key(result):
        if is_team_mode:
            return (result.team_position or 0, team_index.get(result.team, 0), result.position or 0)
        return (result.team_position or 0, result.position or 0)

    return {result.name: result for result in sorted(results, key=sort_key)}


def results_to_frame(results: dict[str, MatchResult]) -> pd.DataFrame:
    """Convert a result set into a DataFrame, one row per player in result order."""
    return pd.DataFrame([asdict(result) for result in results.values()], columns=RESULT_COLUMNS)


class MatchCalculator:
    """Calculates rating changes of one match against a board's settings and tiers."""

    def __init__(
        self,
        match: Match | None = None,
        settings: RatingSettings | None = None,
        tiers: Sequence[BoardTier] = (),
    ) -> None:
        self.match = match
        self.settings = settings
        self.tiers = tuple(tiers)

    def calculate(self) -> dict[str, MatchResult] | None:
        """
        Calculate match results and rating changes.

        Rankings are left empty; calculate_board_rankings() fills them.

        Returns:
            Results keyed by player name in display order, or None if the
            rating scheme is unsupported or cannot score this match

        Raises:
            CalculationError: If the computation itself fails
        """
        match = self.match
        scheme = get_rating_scheme(match.teams, match.lobby_type, self.settings)
        if scheme is None:
            logger.warning(f"Unsupported rating scheme: {self.settings.scheme!r}")
            return None
        if not scheme.is_valid():
            logger.warning(f"Rating scheme {self.settings.scheme!r} cannot score lobby #{match.lobby_number}")
            return None

        deltas = {}
        try:
            for player_team in match.teams:
                for player in player_team.players:
                    delta = 0.0
                    for opponent_team in match.teams:
                        if opponent_team is player_team:
                            continue
                        for opponent in opponent_team.players:
                            delta += scheme.compute_opponent_delta(player, player_team, opponent, opponent_team)
                    deltas[player.name] = scheme.adjust_final_delta(player, delta)
        except (ZeroDivisionError, OverflowError, TypeError) as e:
            raise CalculationError(f"Could not calculate lobby #{match.lobby_number} results: {e}") from e

        if match.is_team_mode and self.settings.average_by_team:
            for team in match.teams:
                team_delta = statistics.mean(deltas[player.name] for player in team.players)
                for player in team.players:
                    deltas[player.name] = team_delta

        results = []
        for team in match.teams:
            for player in team.players:
                original_rating = float(player.board_rating)
                final_rating = max(original_rating + deltas[player.name], self.settings.rating_min)
                results.append(MatchResult(
                    name=player.name,
                    team=team.name,
                    original_rating=original_rating,
                    delta=deltas[player.name],
                    final_rating=final_rating,
                    team_position=team.position,
                    in_team_position=player.in_team_position,
                    position=player.position,
                    original_tier=get_tier_name(self.tiers, original_rating),
                    final_tier=get_tier_name(self.tiers, final_rating),
                ))

        return sort_results(results, match.teams, match.is_team_mode)

    def calculate_submitted_match(
        self,
        match: Match,
        rating_updates: Sequence[RatingUpdate],
    ) -> dict[str, MatchResult] | None:
        """
        Shape results of a match already scored on the remote board.

        Nothing is recomputed: ratings and rankings come from the board's
        rating updates (0-based rankings are converted to 1-based).

        Returns:
            Results keyed by player name, or None if a player has no rating
            update or the match has no players
        """
        updates = {update.name: update for update in rating_updates}

        results = []
        for team in match.teams:
            for player in team.players:
                update = updates.get(player.name)
                if update is None:
                    logger.warning(f"No rating update for {player.name!r} in match {match.match_id}")
                    return None

                original_ranking = None
                if not update.first_match and update.ranking_before is not None and update.ranking_before >= 0:
                    original_ranking = update.ranking_before + 1
                final_ranking = None
                if update.ranking_after is not None and update.ranking_after >= 0:
                    final_ranking = update.ranking_after + 1

                results.append(MatchResult(
                    name=player.name,
                    team=team.name,
                    original_rating=update.rating_before,
                    delta=update.rating_after - update.rating_before,
                    final_rating=update.rating_after,
                    team_position=team.position,
                    in_team_position=player.in_team_position,
                    position=player.position,
                    original_tier=get_tier_name(self.tiers, update.rating_before),
                    final_tier=get_tier_name(self.tiers, update.rating_after),
                    original_ranking=original_ranking,
                    final_ranking=final_ranking,
                ))

        if not results:
            return None
        return sort_results(results, match.teams, match.is_team_mode)

    @staticmethod
    def calculate_board_ratings(results: dict[str, MatchResult], board_players: pd.DataFrame) -> pd.DataFrame:
        """
        Fold final ratings of a result set into a board snapshot.

        Known players get their final rating, unseen players are appended
        without a ranking. The input frame is not modified.

        Args:
            results: Match results keyed by player name
            board_players: Snapshot with columns [name, rating, ranking]

        Returns:
            New snapshot DataFrame
        """
        players = board_players[BOARD_PLAYER_COLUMNS].copy()
        final_ratings = {name: result.final_rating for name, result in results.items()}

        known = players['name'].isin(final_ratings.keys())
        players.loc[known, 'rating'] = players.loc[known, 'name'].map(final_ratings)

        new_names = [name for name in final_ratings if name not in set(players['name'])]
        if new_names:
            new_players = pd.DataFrame({
                'name': new_names,
                'rating': [final_ratings[name] for name in new_names],
                'ranking': [None] * len(new_names),
            })
            players = new_players if players.empty else pd.concat([players, new_players], ignore_index=True)

        players['rating'] = players['rating'].astype(float)
        return players.reset_index(drop=True)

    @staticmethod
    def calculate_board_rankings(
        results: dict[str, MatchResult],
        board_players: pd.DataFrame,
        new_players: Sequence[str] | None = None,
    ) -> tuple[dict[str, MatchResult], pd.DataFrame]:
        """
        Re-rank a board snapshot after a match and set the match players' rankings.

        Original rankings come from the snapshot before the match. Players who
        were already on the board move one place down for every new player
        whose starting rating was above theirs. Final rankings come from the
        snapshot re-sorted by rating.

        Args:
            results: Match results keyed by player name
            board_players: Snapshot with columns [name, rating, ranking]
            new_players: Names of match players that were not on the board yet

        Returns:
            Tuple of (results with rankings, re-ranked snapshot)
        """
        rankings = {
            name: _optional_int(ranking)
            for name, ranking in zip(board_players['name'], board_players['ranking'])
        }

        players = MatchCalculator.calculate_board_ratings(results, board_players)
        players = players.sort_values('rating', ascending=False, kind='mergesort').reset_index(drop=True)
        players['ranking'] = players.index + 1
        final_rankings = dict(zip(players['name'], players['ranking']))

        ranked = {}
        for name, result in results.items():
            original_ranking = rankings.get(name)
            if original_ranking is not None and new_players and name not in new_players:
                original_ranking += sum(
                    1 for new_name in new_players
                    if new_name in results and results[new_name].original_rating > result.original_rating
                )
            ranked[name] = replace(
                result,
                original_ranking=original_ranking,
                final_ranking=int(final_rankings[name]),
            )

        return ranked, players
