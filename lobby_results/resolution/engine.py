"""
Match Resolution Engine

Produces the results to show for one freshly posted table:

1. If the remote board already scored an equal match, its authoritative
   rating updates are shaped into results.
2. Otherwise the match is predicted. Backlog submissions posted after the
   board's latest scored match (and not after the table itself) are parsed,
   deduplicated per lobby number and replayed in order together with the
   table, carrying ratings and the simulated board forward. The results of
   the last replay, the table itself, are returned.

Every resolution works on its own fetched board snapshot; nothing is shared
between calls.

Usage:
    from lobby_results.resolution.engine import MatchResolutionEngine
    engine = MatchResolutionEngine(LeaderboardClient(), DiscordExportFeed(path))
    results = engine.resolve(table_text)
"""

from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Optional

import pandas as pd

from lobby_results.errors import CalculationError, ParseError, ResolutionNotFound, ValidationError
from lobby_results.ingestion.leaderboard_client import LeaderboardClient
from lobby_results.ingestion.submissions import SubmissionFeed
from lobby_results.models import Board, Match, MatchResult, RatingSettings
from lobby_results.parsing.table_parser import parse_table
from lobby_results.rating.calculator import MatchCalculator, get_rating_scheme
from lobby_results.resolution.comparison import are_matches_duplicated, are_matches_equal
from lobby_results.utils import normalize_whitespace, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one table: the match as shown and its results."""

    match: Match
    results: dict[str, MatchResult]
    submitted_match: Optional[Match] = None

    @property
    def is_prediction(self) -> bool:
        return self.submitted_match is None


@dataclass(frozen=True, eq=False)
class ReplayState:
    """Working state carried from one replayed match to the next."""

    ratings: dict[str, float]
    board_players: pd.DataFrame
    results: Optional[dict[str, MatchResult]] = None


def deduplicate_matches(matches: list[Match]) -> list[Match]:
    """
    Drop repeated postings of the same lobby.

    Inside each lobby number group, a match that is equal to a later one is
    dropped first, then a match that is merely duplicated by a later one.
    The later posting is kept in both passes. Survivors keep their order.
    """
    groups = defaultdict(list)
    for i, match in enumerate(matches):
        groups[int(match.lobby_number)].append(i)

    removed = set()
    for predicate in (are_matches_equal, are_matches_duplicated):
        for indices in groups.values():
            alive = [i for i in indices if i not in removed]
            for position, i in enumerate(alive[:-1]):
                if any(predicate(matches[i], matches[j]) for j in alive[position + 1:]):
                    removed.add(i)

    if removed:
        logger.info(f"Dropped {len(removed)} repeated submission(s)")
    return [match for i, match in enumerate(matches) if i not in removed]


class MatchResolutionEngine:
    """
    Resolves posted tables against a leaderboard client and a submissions feed.

    Args:
        leaderboard_client: Object with get_board(board_id) and
            get_match_rating_updates(match_id)
        submission_feed: Object with get_recent_submissions(), or None for
            no backlog
    """

    def __init__(self, leaderboard_client: LeaderboardClient, submission_feed: Optional[SubmissionFeed] = None):
        self.leaderboard_client = leaderboard_client
        self.submission_feed = submission_feed

    def resolve(self, table_text: str) -> dict[str, MatchResult]:
        """
        Resolve a table into results keyed by player name.

        Raises:
            ParseError: The table could not be parsed
            ValidationError: No board for the lobby type, or its rating settings are unusable
            RemoteUnavailable: The leaderboard could not be fetched
            ResolutionNotFound: Nothing to predict, or the scored match could not be looked up
            CalculationError: The rating computation failed
        """
        return self.resolve_table(table_text).results

    def resolve_table(self, table_text: str) -> Resolution:
        match = parse_table(table_text)
        logger.info(f"Resolving lobby #{match.lobby_number} ({match.lobby_type}) with {len(match.player_names)} players")

        if match.board_id is None:
            raise ValidationError(f"Lobby type {match.lobby_type!r} has no leaderboard.")

        board = self.leaderboard_client.get_board(match.board_id)

        submitted_match = self.find_submitted_match(match, board)
        if submitted_match is not None:
            return self.resolve_submitted_match(match, submitted_match, board)

        return Resolution(match=match, results=self.predict_match(match, board))

    # --- Already Scored Matches ---
    def find_submitted_match(self, match: Match, board: Board) -> Match | None:
        """Return the board's scored match equal to the table, if any."""
        if board.latest_match is None:
            return None

        for remote_match in board.matches:
            if int(remote_match.lobby_number) != int(match.lobby_number):
                continue
            if are_matches_equal(remote_match, match):
                logger.info(f"Lobby #{match.lobby_number} already scored as match {remote_match.match_id}")
                return remote_match
        return None

    def resolve_submitted_match(self, match: Match, submitted_match: Match, board: Board) -> Resolution:
        rating_updates = self.leaderboard_client.get_match_rating_updates(submitted_match.match_id)
        if rating_updates is None:
            raise ResolutionNotFound(f"No rating updates for match {submitted_match.match_id}.")

        results = MatchCalculator(tiers=board.tiers).calculate_submitted_match(submitted_match, rating_updates)
        if results is None:
            raise CalculationError("Unable to retrieve results for the submitted match.")

        match = replace(match, lobby_type=submitted_match.lobby_type, lobby_name=submitted_match.lobby_name)
        return Resolution(match=match, results=results, submitted_match=submitted_match)

    # --- Prediction ---
    def parse_submissions(self) -> list[tuple[str, Match]]:
        """Parse the feed's submissions, oldest first, skipping unparseable ones."""
        if self.submission_feed is None:
            return []

        parsed = []
        for submission in self.submission_feed.get_recent_submissions():
            try:
                submitted = parse_table(submission.text)
            except ParseError as e:
                logger.debug(f"Skipping submission from {submission.posted_at}: {e}")
                continue
            parsed.append((normalize_whitespace(submission.text), submitted.with_posted_at(submission.posted_at)))
        return parsed

    def collect_candidates(self, match: Match, board: Board) -> list[Match]:
        """
        Gather the matches to replay, ending with the table itself.

        Keeps backlog submissions of the same board posted between the board's
        latest scored match and the table's own posting (when the table was
        posted to the feed), leaving out the latest scored match and the table.
        """
        submissions = self.parse_submissions()

        latest_match = board.latest_match
        lower_bound = latest_match.posted_at if latest_match else None
        upper_bound = next((submitted.posted_at for _, submitted in submissions if are_matches_equal(match, submitted)), None)

        candidates = {}
        for key, submitted in submissions:
            if key in candidates:
                continue
            if submitted.board_id != match.board_id:
                continue
            if latest_match and are_matches_equal(submitted, latest_match):
                continue
            if are_matches_equal(submitted, match):
                continue
            if lower_bound is not None and submitted.posted_at < lower_bound:
                continue
            if upper_bound is not None and submitted.posted_at > upper_bound:
                continue
            candidates[key] = submitted

        candidates.setdefault(normalize_whitespace(match.template), match)
        logger.info(f"Found {len(candidates) - 1} unscored submission(s) before lobby #{match.lobby_number}")
        return list(candidates.values())

    def predict_match(self, match: Match, board: Board) -> dict[str, MatchResult]:
        matches = deduplicate_matches(self.collect_candidates(match, board))
        if not matches:
            raise ResolutionNotFound("No matches found.")

        settings = board.rating_settings()
        if settings is None:
            raise ValidationError(f"Board contains unsupported rating scheme {board.rating_scheme!r}.")

        board_ratings = board.player_ratings()
        ratings = {
            name: board_ratings.get(name, settings.initial)
            for replayed in matches
            for name in replayed.player_names
        }

        state = ReplayState(ratings=ratings, board_players=board.players)
        for replayed in matches:
            state = self.replay_match(state, replayed, settings, board)
        return state.results

    def replay_match(self, state: ReplayState, match: Match, settings: RatingSettings, board: Board) -> ReplayState:
        """Score one match with the working ratings and fold it into the simulated board."""
        match = match.with_board_ratings(state.ratings)

        scheme = get_rating_scheme(match.teams, match.lobby_type, settings)
        if scheme is None:
            raise ValidationError(f"Board contains unsupported rating scheme {settings.scheme!r}.")
        if not scheme.is_valid():
            raise ValidationError(f"Lobby #{match.lobby_number} cannot be scored with the board's {settings.scheme!r} settings.")

        results = MatchCalculator(match, settings, board.tiers).calculate()
        if results is None:
            raise CalculationError(f"Could not calculate match #{match.lobby_number} results.")

        known_players = set(state.board_players['name'])
        new_players = [name for name in results if name not in known_players]
        results, board_players = MatchCalculator.calculate_board_rankings(results, state.board_players, new_players)

        ratings = {**state.ratings, **{name: result.final_rating for name, result in results.items()}}
        logger.debug(f"Replayed lobby #{match.lobby_number}: {len(results)} players, {len(new_players)} new")
        return ReplayState(ratings=ratings, board_players=board_players, results=results)


def resolve(
    table_text: str,
    leaderboard_client: Optional[LeaderboardClient] = None,
    submission_feed: Optional[SubmissionFeed] = None,
) -> dict[str, MatchResult]:
    """
    Resolve a posted table into results keyed by player name.

    Uses the live leaderboard when no client is given.
    """
    if leaderboard_client is None:
        leaderboard_client = LeaderboardClient()
    return MatchResolutionEngine(leaderboard_client, submission_feed).resolve(table_text)
