"""Immutable records shared by the parser, the rating schemes and the resolution engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterator, Optional

import pandas as pd

from lobby_results.config import TEAM_MODES
from lobby_results.utils import to_datetime

BOARD_PLAYER_COLUMNS = ["name", "rating", "ranking"]


@dataclass(frozen=True)
class Player:
    """One table line: per-track scores and a penalty (positive = deduction)."""

    name: str
    scores: tuple[int, ...] = ()
    penalty: int = 0
    flag: str = ""
    board_rating: Optional[float] = None
    in_team_position: Optional[int] = None
    position: Optional[int] = None

    @property
    def score(self) -> int:
        return sum(self.scores)

    @property
    def points(self) -> int:
        return self.score - self.penalty


@dataclass(frozen=True)
class Team:
    """A team owns its players. Non-team lobbies use one synthetic team per player."""

    name: str
    players: tuple[Player, ...] = ()
    penalty: int = 0
    color: str = ""
    table_order: Optional[int] = None
    position: Optional[int] = None
    table_players_order: Optional[tuple[str, ...]] = None

    @property
    def score(self) -> int:
        return sum(player.score for player in self.players)

    @property
    def points(self) -> int:
        return self.score - self.penalty


@dataclass(frozen=True)
class Match:
    """A parsed results table, or a match already scored on the remote board."""

    board_id: str
    lobby_number: int
    lobby_type: str
    teams: tuple[Team, ...]
    lobby_name: str = ""
    template: str = ""
    posted_at: Optional[datetime] = None
    match_id: Optional[str] = None

    @property
    def is_team_mode(self) -> bool:
        return self.lobby_type in TEAM_MODES

    @property
    def players(self) -> Iterator[Player]:
        for team in self.teams:
            yield from team.players

    @property
    def player_names(self) -> list[str]:
        return [player.name for player in self.players]

    def with_board_ratings(self, ratings: dict[str, float]) -> Match:
        """Return a copy whose players carry the given board ratings."""
        teams = tuple(
            replace(team, players=tuple(
                replace(player, board_rating=float(ratings[player.name]))
                for player in team.players
            ))
            for team in self.teams
        )
        return replace(self, teams=teams)

    def with_posted_at(self, posted_at: Optional[datetime]) -> Match:
        return replace(self, posted_at=posted_at)


@dataclass(frozen=True)
class BoardTier:
    name: str
    lower_bound: float
    color: str = ""


@dataclass(frozen=True)
class RatingSettings:
    """
    Configuration of one rating scheme.

    scaling_factors and baselines are indexed by team-size category
    (see config.TEAM_SIZE_CATEGORY). Baselines are only used by the MMR scheme.
    """

    scheme: str
    rating_min: float = 0.0
    average_by_team: bool = False
    initial: float = 0.0
    scaling_factors: tuple[float, ...] = ()
    baselines: tuple[float, ...] = ()


@dataclass(frozen=True)
class RatingUpdate:
    """Authoritative before/after figures of one player in a scored remote match (0-based rankings)."""

    name: str
    rating_before: float
    rating_after: float
    ranking_before: Optional[int] = None
    ranking_after: Optional[int] = None
    first_match: bool = False


@dataclass(frozen=True)
class MatchResult:
    name: str
    team: str
    original_rating: float
    delta: float
    final_rating: float
    team_position: Optional[int]
    in_team_position: Optional[int]
    position: Optional[int]
    original_tier: Optional[str]
    final_tier: Optional[str]
    original_ranking: Optional[int] = None
    final_ranking: Optional[int] = None


@dataclass(frozen=True)
class Submission:
    """One message of the results submissions feed."""

    text: str
    posted_at: datetime

    def __post_init__(self):
        # naive timestamps are read as UTC, like remote match dates
        object.__setattr__(self, "posted_at", to_datetime(self.posted_at))


@dataclass(frozen=True, eq=False)
class Board:
    """
    Read-only snapshot of a remote leaderboard.

    players is a DataFrame with columns [name, rating, ranking], sorted by
    rating descending with 1-based rankings. matches are the most recent
    scored matches, newest first.
    """

    board_id: str
    name: str = ""
    players: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=BOARD_PLAYER_COLUMNS))
    tiers: tuple[BoardTier, ...] = ()
    rating_scheme: str = ""
    scheme_parameters: dict = field(default_factory=dict)
    rating_average_by_team: bool = False
    rating_min: float = 0.0
    match_count: int = 0
    matches: tuple[Match, ...] = ()

    @property
    def latest_match(self) -> Optional[Match]:
        if self.match_count > 0 and self.matches:
            return self.matches[0]
        return None

    def player_ratings(self) -> dict[str, float]:
        return {name: float(rating) for name, rating in zip(self.players["name"], self.players["rating"])}

    def rating_settings(self) -> Optional[RatingSettings]:
        """
        Build rating settings from the board's scheme and its parameter block.

        Returns:
            RatingSettings, or None if the board has no parameters for its scheme
        """
        parameters = self.scheme_parameters.get(self.rating_scheme)
        if not parameters:
            return None
        return RatingSettings(
            scheme=self.rating_scheme,
            rating_min=float(self.rating_min or 0),
            average_by_team=bool(self.rating_average_by_team),
            initial=float(parameters.get("initial") or 0),
            scaling_factors=tuple(float(v) for v in parameters.get("scalingFactors") or ()),
            baselines=tuple(float(v) for v in parameters.get("baselines") or ()),
        )
