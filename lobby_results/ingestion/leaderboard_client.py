"""
Leaderboard API Client

Read-only GraphQL client for the remote leaderboard:
- board snapshot: players, tiers, rating scheme and settings, recent matches
- rating updates of one scored match

Remote matches are stored as JSON `matchData` documents whose shape differs
between lobby types; they are converted into Match records the same way the
table parser builds them, so the two can be compared.

Usage:
    from lobby_results.ingestion.leaderboard_client import LeaderboardClient
    board = LeaderboardClient().get_board("8-jFwF")
"""

import json
from typing import Any

import pandas as pd
import requests

from lobby_results.config import (
    BOARD_MATCH_HISTORY,
    DEFAULT_LOBBY_SIZES,
    LEADERBOARD_API_URL,
    LEADERBOARDS,
    RATING_SCHEME_ELO,
    RATING_SCHEME_MMR,
    REQUEST_TIMEOUT,
    TEAM_MODES,
)
from lobby_results.errors import RemoteUnavailable
from lobby_results.models import BOARD_PLAYER_COLUMNS, Board, BoardTier, Match, Player, RatingUpdate, Team
from lobby_results.parsing.table_parser import parse_lobby_type, sort_teams
from lobby_results.utils import LOBBY_NUMBER_RE, setup_logging, to_datetime

# --- Module Logger ---
logger = setup_logging(__name__)

# GraphQL field holding each rating scheme's parameters
SCHEME_FIELDS = {
    RATING_SCHEME_ELO: "ratingElo",
    RATING_SCHEME_MMR: "ratingMk8dxMmr",
}

BOARD_QUERY = (
    '{ team(teamId:"%s") { name, players { name, rating, ranking }, tiers { name, lowerBound, color }, '
    'ratingAverageByTeam, ratingMin, ratingScheme, ratingElo { initial, scalingFactors }, '
    'ratingMk8dxMmr { initial, scalingFactors, baselines }, matchCount, '
    'matches (skip: 0, count: %d) { id, teamId, matchData, createDate, playDate } } }'
)

RATING_UPDATES_QUERY = (
    '{ teamMatch(teamMatchId:"%s") { ratingUpdates { name, rankingBefore, rankingAfter, '
    'ratingBefore, ratingAfter, firstMatch } } }'
)


class LeaderboardClient:
    """
    Client for the leaderboard GraphQL API.

    Args:
        api_url: GraphQL endpoint
        timeout: Request timeout in seconds
        session: requests.Session to use (a new one by default)
    """

    def __init__(self, api_url: str = LEADERBOARD_API_URL, timeout: float = REQUEST_TIMEOUT, session=None):
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def make_request(self, query: str) -> dict[str, Any]:
        """
        Send a GraphQL query and return the response's `data` object.

        Raises:
            RemoteUnavailable: On connection errors, timeouts, non-200 answers
                or a body without data
        """
        try:
            response = self.session.post(
                self.api_url,
                data=query.encode("utf-8"),
                headers={"Content-Type": "text/plain"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise RemoteUnavailable(f"Leaderboard request failed: {e}") from e

        if response.status_code != 200:
            raise RemoteUnavailable(f"Leaderboard answered with HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteUnavailable(f"Leaderboard answered with invalid JSON: {e}") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not data:
            raise RemoteUnavailable("Leaderboard answered without data")
        return data

    def get_board(self, board_id: str) -> Board:
        """
        Fetch a board snapshot.

        Raises:
            RemoteUnavailable: If the request fails or the board does not exist
        """
        data = self.make_request(BOARD_QUERY % (board_id, BOARD_MATCH_HISTORY))
        team = data.get("team")
        if not team:
            raise RemoteUnavailable(f"Board {board_id} not found")

        board = Board(
            board_id=board_id,
            name=team.get("name") or "",
            players=parse_players(team.get("players")),
            tiers=parse_tiers(team.get("tiers")),
            rating_scheme=team.get("ratingScheme") or "",
            scheme_parameters={
                scheme: team[field] for scheme, field in SCHEME_FIELDS.items() if team.get(field)
            },
            rating_average_by_team=bool(team.get("ratingAverageByTeam")),
            rating_min=float(team.get("ratingMin") or 0),
            match_count=int(team.get("matchCount") or 0),
            matches=parse_matches(team.get("matches"), board_id) if team.get("matchCount") else (),
        )
        logger.info(f"Fetched board {board_id}: {len(board.players)} players, {len(board.matches)} matches")
        return board

    def get_match_rating_updates(self, match_id: str) -> list[RatingUpdate] | None:
        """
        Fetch the rating updates of a scored match.

        Returns:
            Rating updates (0-based rankings), or None if the match has none

        Raises:
            RemoteUnavailable: If the request fails
        """
        data = self.make_request(RATING_UPDATES_QUERY % match_id)
        team_match = data.get("teamMatch") or {}
        updates = team_match.get("ratingUpdates")
        if updates is None:
            logger.warning(f"Match {match_id} has no rating updates")
            return None

        return [
            RatingUpdate(
                name=update["name"],
                rating_before=float(update["ratingBefore"]),
                rating_after=float(update["ratingAfter"]),
                ranking_before=update.get("rankingBefore"),
                ranking_after=update.get("rankingAfter"),
                first_match=bool(update.get("firstMatch")),
            )
            for update in updates
        ]


# --- Payload Parsing ---
def parse_players(players: list[dict] | None) -> pd.DataFrame:
    """Build the players table sorted by rating (best first) with 1-based rankings."""
    if not players:
        return pd.DataFrame(columns=BOARD_PLAYER_COLUMNS)

    df = pd.DataFrame(players).reindex(columns=BOARD_PLAYER_COLUMNS)
    df['rating'] = df['rating'].astype(float)
    # remote rankings are 0-based; missing or negative rankings stay empty
    ranking = pd.to_numeric(df['ranking'], errors='coerce')
    df['ranking'] = ranking.where(ranking >= 0).astype('Int64') + 1
    return df.sort_values('rating', ascending=False, kind='mergesort').reset_index(drop=True)


def parse_tiers(tiers: list[dict] | None) -> tuple[BoardTier, ...]:
    tiers = [
        BoardTier(name=tier["name"], lower_bound=float(tier["lowerBound"]), color=tier.get("color") or "")
        for tier in tiers or []
    ]
    return tuple(sorted(tiers, key=lambda tier: tier.lower_bound))


def board_lobby_types(board_id: str) -> list[str]:
    """Lobby types scored on a board, in declaration order."""
    return [lobby_type for lobby_type, lobby_board in LEADERBOARDS.items() if lobby_board == board_id]


def guess_lobby_type(board_id: str, teams: list[dict]) -> str | None:
    """Pick the board's first lobby type whose default team and player counts fit."""
    team_count = len(teams)
    player_count = sum(len(team.get("players") or []) for team in teams)
    for lobby_type in board_lobby_types(board_id):
        if DEFAULT_LOBBY_SIZES.get(lobby_type) == (team_count, player_count):
            return lobby_type
    return None


def _remote_player(data: dict) -> Player:
    return Player(
        name=data["name"],
        scores=tuple(int(score) for score in data.get("scores") or ()),
        penalty=abs(int(data.get("penalty") or 0)),
        flag=data.get("flag") or "",
        board_rating=data.get("boardRating"),
    )


def parse_match(match: dict, board_id: str) -> Match | None:
    """
    Convert one remote match into a Match.

    Returns:
        Match, or None if its lobby type cannot be determined
    """
    match_data = json.loads(match["matchData"])
    remote_teams = match_data.get("teams") or []
    title = match_data.get("title") or ""
    first_team = remote_teams[0] if remote_teams else {}
    tag = first_team.get("tag") or ""
    name = first_team.get("name") or ""

    lobby_number = 0
    number_match = LOBBY_NUMBER_RE.search(title or tag)
    if number_match:
        lobby_number = int(number_match.group(1))

    lobby_type = None
    lobby_name = ""
    if title:
        lobby_name = title
        parts = title.split(" - ")
        if len(parts) > 1:
            lobby_type = parse_lobby_type(parts[1])
    elif tag and name:
        lobby_name = f"{name} - {tag}"
        lobby_type = parse_lobby_type(name)

    if lobby_type is None:
        lobby_type = guess_lobby_type(board_id, remote_teams)
    if lobby_type is None:
        return None

    if lobby_type in TEAM_MODES:
        teams = []
        for team in remote_teams:
            players = tuple(_remote_player(player) for player in team.get("players") or [])
            teams.append(Team(
                name=team.get("tag") or team.get("name") or "",
                color=team.get("color") or "",
                players=players,
                penalty=sum(player.penalty for player in players),
            ))
    else:
        teams = [
            Team(name=player.name, players=(player,), penalty=player.penalty)
            for player in (_remote_player(data) for team in remote_teams for data in team.get("players") or [])
        ]

    return Match(
        board_id=match.get("teamId") or board_id,
        lobby_number=lobby_number,
        lobby_type=lobby_type,
        lobby_name=lobby_name,
        teams=sort_teams(teams),
        posted_at=to_datetime(match.get("playDate")) or to_datetime(match.get("createDate")),
        match_id=match.get("id"),
    )


def parse_matches(matches: list[dict] | None, board_id: str) -> tuple[Match, ...]:
    """Convert remote matches (newest first), skipping the ones that cannot be read."""
    parsed = []
    for match in matches or []:
        try:
            converted = parse_match(match, board_id)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable match {match.get('id')}: {e}")
            continue
        if converted is None:
            logger.debug(f"Skipping match {match.get('id')}: unknown lobby type")
            continue
        parsed.append(converted)
    return tuple(parsed)
