"""
Results Table Parser

This module turns a human-typed lobby results table into a Match record.

A table looks like:

    // optional comments
    Lobby #12 - 4v4
    Red Team #ff0000
    Alice [us] 12|15|9
    Bob 10|8-2|11 (-3)
    Penalty 10
    Blue Team
    Carol 9|9|9
    ...

Parsing is a pure function of the text. It either returns a complete Match
or raises ParseError; no partial matches are returned.

Usage:
    from lobby_results.parsing.table_parser import parse_table
    match = parse_table(text)
"""

import re
import unicodedata
from dataclasses import dataclass, field, replace
from typing import Sequence

from lobby_results.config import (
    DEFAULT_TEAM_PREFIX,
    LEADERBOARDS,
    MAX_INPUT_SIZE,
    MAX_PENALTY,
    MAX_TRACKS,
    MAX_TRACK_SCORE,
    TEAM_MODES,
)
from lobby_results.errors import ParseError
from lobby_results.models import Match, Player, Team
from lobby_results.utils import competition_ranks, setup_logging, validate_input_size

# --- Module Logger ---
logger = setup_logging(__name__)

# --- Line Patterns ---
# Lobby #12 - FFA (the "#" and "-" are optional)
HEADER_RE = re.compile(r"^lobby\s*#?(\d+)\s*-?\s*(.+)$", re.IGNORECASE)

# Comment lines start with // or #
COMMENT_RE = re.compile(r"^(//|#)")

# Penalty 10 / Bonus 5 / Penalty 5+5
PENALTY_RE = re.compile(r"^(Penalty|Bonus)\s+((?:[+\-]?[0-9])+)\s*$", re.IGNORECASE)

# Name [flag] 12|10-2|15+1 (-3) trailing text
PLAYER_RE = re.compile(
    r"^((?!(?:Bonus|Penalty)\b)\S+|(?:Bonus|Penalty)\S+)"
    r"(?:\s+\[?([A-Za-z\-_]{0,7})\]?)?"
    r"\s+((?:[+\-]?[0-9|])+)"
    r"(\s+\(?[+\-0-9]*\)?)?"
    r"(?:\s.*)?$",
    re.IGNORECASE,
)

# Team name #hexcolor (-10) trailing text
TEAM_RE = re.compile(r"^(.*?)\s*(#[0-9A-Fa-f]+)?(?:\s*(\((?:[+\-]?[0-9])+\)?))?(?:\s[^#(]*)?$")

SIGNED_TERM_RE = re.compile(r"(?=[+\-])")

# --- Line Kinds ---
LINE_NONE = "none"
LINE_COMMENT = "comment"
LINE_TEAM = "team"
LINE_PLAYER = "player"
LINE_PENALTY = "penalty"


@dataclass
class TeamDraft:
    """A team being filled while lines are scanned."""
    name: str
    color: str = ""
    penalty: int = 0
    players: list[Player] = field(default_factory=list)
    template_indices: list[int] = field(default_factory=list)


@dataclass
class ParserState:
    """Everything the line scanner carries from one line to the next."""
    is_team_mode: bool
    template: list[str] = field(default_factory=list)
    teams: list[TeamDraft] = field(default_factory=list)
    seen_players: set[str] = field(default_factory=set)
    team_letter: int = ord("A")
    last_line: str = LINE_NONE
    last_line_team: bool = False

    @property
    def current_team(self) -> TeamDraft | None:
        return self.teams[-1] if self.teams else None

    def push_template(self, line: str) -> int:
        self.template.append(line)
        return len(self.template) - 1

    def drop_team(self, team: TeamDraft) -> None:
        """Forget a team and blank its lines in the template."""
        for index in team.template_indices:
            self.template[index] = ""
        self.teams.remove(team)


# --- Expressions ---
def sum_expression(text: str) -> int:
    """
    Sum a string of numbers separated by + or - signs, ignoring parentheses.

    "(-5)" gives -5, "10+5-3" gives 12, "" gives 0.
    """
    total = 0
    for term in SIGNED_TERM_RE.split(text.replace("(", "").replace(")", "").strip()):
        term = term.strip()
        if term in ("", "+", "-"):
            continue
        total += int(term)
    return total


def clamp_penalty(value: int) -> int:
    return max(-MAX_PENALTY, min(MAX_PENALTY, value))


def parse_track_score(token: str) -> tuple[int, int]:
    """
    Parse one pipe-separated score token.

    Positive terms add up to the track score (capped at MAX_TRACK_SCORE),
    negative terms are an inline deduction.

    Returns:
        Tuple of (track score, inline deduction as a positive number)
    """
    score = 0
    deduction = 0
    for term in SIGNED_TERM_RE.split(token):
        if term in ("", "+", "-"):
            continue
        value = int(term)
        if value < 0:
            deduction -= value
        else:
            score += value
    return min(score, MAX_TRACK_SCORE), deduction


def remove_emojis(text: str) -> str:
    """Drop symbol characters (emojis) and their joiners/selectors."""
    return "".join(
        char for char in text
        if unicodedata.category(char) != "So" and char not in ("\u200d", "\ufe0f")
    ).strip()


# --- Lobby Header ---
def parse_lobby_type(text: str) -> str | None:
    """
    Resolve the free text of a lobby header into a supported lobby type code.

    The text is lower-cased, "vs"/"v" separators are collapsed and spaces become
    underscores. Race types get a "race_" prefix. An exact code wins, otherwise the
    first known code contained in the text is used.

    Args:
        text: Header text after "Lobby #<n> -", e.g. "Itemless 2 vs 2"

    Returns:
        Lobby type code, or None if unknown or without a leaderboard
    """
    lobby_type = re.sub(r"\s+", " ", text.strip().lower())
    for separator in (" vs. ", " vs ", " v ", "vs.", "vs"):
        lobby_type = lobby_type.replace(separator, "v")
    lobby_type = lobby_type.replace(" ", "_")
    if not lobby_type.startswith("insta") and not lobby_type.startswith("battle"):
        lobby_type = "race_" + lobby_type

    if lobby_type not in LEADERBOARDS:
        for code in LEADERBOARDS:
            if code in lobby_type:
                lobby_type = code
                break

    if LEADERBOARDS.get(lobby_type) is None:
        return None
    return lobby_type


def parse_lobby_name(lobby_number: int, text: str) -> str:
    return f"Lobby #{lobby_number} - {text.split('#', 1)[0].strip()}"


def find_header(lines: list[str]) -> int:
    """Return the index of the lobby header line, or -1."""
    for i, line in enumerate(lines):
        if HEADER_RE.match(line):
            return i
    return -1


# --- Line Classification ---
def is_comment_line(line: str) -> bool:
    return COMMENT_RE.match(line) is not None


def is_penalty_line(line: str) -> bool:
    return PENALTY_RE.match(line) is not None


def is_player_line(line: str) -> bool:
    return PLAYER_RE.match(line) is not None


def is_team_line(line: str, state: ParserState) -> bool:
    """
    A team marker is any team-mode line not shaped like a player, or a
    player-shaped line carrying an explicit hex color.
    """
    if not state.is_team_mode:
        return False
    if not is_player_line(line):
        return True
    matches = TEAM_RE.match(line)
    return matches is not None and bool(matches.group(1)) and bool(matches.group(2))


# --- Line Processing ---
def parse_team_marker(line: str, default_name: str) -> tuple[str, str, int]:
    """
    Extract name, color and penalty from a team marker line.

    Returns:
        Tuple of (name, color, penalty) where a positive penalty is a deduction
    """
    matches = TEAM_RE.match(line)
    if matches is None:
        return default_name, "", 0

    name, color, penalty = matches.groups()
    if not color and not penalty:
        name = matches.group(0)
    name = remove_emojis(name) or default_name
    return name, color or "", -sum_expression(penalty) if penalty else 0


def process_team_line(line: str, state: ParserState) -> None:
    # consecutive team markers: the latest one replaces the empty one before it
    if state.last_line_team:
        state.team_letter -= 1
        if state.teams:
            state.drop_team(state.teams[-1])

    name, color, penalty = parse_team_marker(line, DEFAULT_TEAM_PREFIX + chr(state.team_letter))
    team = TeamDraft(name=name, color=color, penalty=penalty)
    state.teams.append(team)
    state.team_letter += 1
    state.last_line_team = True

    if state.last_line in (LINE_PENALTY, LINE_PLAYER):
        state.push_template("\n")
    team.template_indices.append(state.push_template(line + "\n"))
    state.last_line = LINE_TEAM


def process_penalty_line(line: str, state: ParserState) -> None:
    """Apply a Penalty/Bonus line to the most recently opened team; ignored out of context."""
    if not state.is_team_mode or state.last_line not in (LINE_PENALTY, LINE_TEAM, LINE_PLAYER):
        logger.debug(f"Ignoring penalty line out of team context: {line!r}")
        return

    team = state.current_team
    if team is None:
        return

    kind, expression = PENALTY_RE.match(line).groups()
    amount = abs(clamp_penalty(sum_expression(expression)))
    team.penalty += amount if kind.lower() == "penalty" else -amount

    team.template_indices.append(state.push_template(line + "\n"))
    state.last_line = LINE_PENALTY


def parse_player(line: str) -> Player:
    """
    Build a Player from a player line.

    Raises:
        ParseError: If a score token cannot be read
    """
    matches = PLAYER_RE.match(line)
    if matches is None:
        raise ParseError("Could not parse players.")

    name, flag, scores_text, penalty_text = matches.groups()
    # "[]" and one-letter brackets are read as an empty flag
    if flag and len(flag) < 2:
        flag = ""
    # sign convention of the suffix: "(-3)" is a 3 point deduction, "(+3)" a bonus
    adjustment = sum_expression(penalty_text) if penalty_text else 0

    scores = []
    try:
        for token in scores_text.split("|")[:MAX_TRACKS]:
            score, deduction = parse_track_score(token)
            scores.append(score)
            adjustment -= deduction
    except ValueError as e:
        raise ParseError(f"Could not parse scores of {name.strip()!r}: {e}") from e

    return Player(
        name=name.strip(),
        flag=flag or "",
        scores=tuple(scores),
        penalty=-clamp_penalty(adjustment),
    )


def process_player_line(line: str, state: ParserState) -> None:
    player = parse_player(line)

    if player.name in state.seen_players:
        raise ParseError(f"Duplicate player names: {player.name!r}.")
    state.seen_players.add(player.name)

    if state.is_team_mode:
        team = state.current_team
        if team is None:
            raise ParseError("Invalid team initialization.")
        team.players.append(player)
        state.last_line_team = False
    else:
        state.teams.append(TeamDraft(name=player.name, players=[player]))

    state.push_template(line + "\n")
    state.last_line = LINE_PLAYER


# --- Ranking ---
def sort_teams(teams: Sequence[Team]) -> tuple[Team, ...]:
    """
    Order teams and players by points and assign competition-ranked positions.

    Teams are ranked by (score - penalty), players inside each team and across
    the whole match by (sum of track scores - penalty). Ties share a position
    and the next distinct value skips ranks. The first call records each team's
    table order and its table player order; later calls keep them.

    Args:
        teams: Teams in any order

    Returns:
        New tuple of teams with positions set, best team first
    """
    teams = [
        replace(
            team,
            table_order=i if team.table_order is None else team.table_order,
            table_players_order=(
                team.table_players_order
                if team.table_players_order is not None
                else tuple(player.name for player in team.players)
            ),
        )
        for i, team in enumerate(teams)
    ]

    teams.sort(key=lambda team: -team.points)
    team_positions = competition_ranks([team.points for team in teams])

    all_players = sorted((player for team in teams for player in team.players), key=lambda player: -player.points)
    overall = dict(zip(
        (player.name for player in all_players),
        competition_ranks([player.points for player in all_players]),
    ))

    ranked = []
    for team, team_position in zip(teams, team_positions):
        players = sorted(team.players, key=lambda player: -player.points)
        in_team = competition_ranks([player.points for player in players])
        ranked.append(replace(
            team,
            position=team_position,
            players=tuple(
                replace(player, in_team_position=in_team_position, position=overall[player.name])
                for player, in_team_position in zip(players, in_team)
            ),
        ))
    return tuple(ranked)


# --- Entry Point ---
def parse_table(text: str) -> Match:
    """
    Parse a results table into a validated, ranked Match.

    Args:
        text: Raw table text as posted by a user

    Returns:
        Match with sorted teams and its canonical template

    Raises:
        ParseError: Missing header, unsupported lobby type, unreadable or
            duplicate player, or fewer than two non-empty teams
    """
    try:
        validate_input_size(text, MAX_INPUT_SIZE)
    except ValueError as e:
        raise ParseError(str(e)) from e

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    header_position = find_header(lines)
    if header_position == -1:
        raise ParseError("Invalid table format. Lobby header not found.")

    lobby_comments = [line for line in lines[:header_position] if is_comment_line(line)]
    lines = lines[header_position:]

    lobby_number_text, lobby_text = HEADER_RE.match(lines[0]).groups()
    lobby_number = int(lobby_number_text)
    lobby_type = parse_lobby_type(lobby_text)
    if lobby_number <= 0 or lobby_type is None:
        raise ParseError(f"Could not parse lobby number / type from {lines[0]!r}.")

    state = ParserState(is_team_mode=lobby_type in TEAM_MODES)
    state.push_template(lines[0] + "\n\n")

    for i, line in enumerate(lines[1:], start=1):
        if is_comment_line(line):
            state.push_template(line + "\n")
            state.last_line = LINE_COMMENT
            continue

        if is_penalty_line(line):
            process_penalty_line(line, state)
            continue

        if is_team_line(line, state):
            # a team marker on the last line can have no players
            if i == len(lines) - 1:
                continue
            process_team_line(line, state)
            continue

        if is_player_line(line):
            process_player_line(line, state)
            continue

        logger.debug(f"Ignoring unrecognized line: {line!r}")

    for team in [team for team in state.teams if not team.players]:
        state.drop_team(team)

    if len(state.teams) < 2:
        raise ParseError("Invalid teams.")

    teams = [
        Team(
            name=team.name,
            color=team.color,
            players=tuple(team.players),
            penalty=team.penalty + sum(player.penalty for player in team.players),
        )
        for team in state.teams
    ]

    body = re.sub(r"\n{3,}", "\n\n", "".join(state.template)).strip()
    template = ("\n".join(lobby_comments) + "\n\n" if lobby_comments else "") + body

    return Match(
        board_id=LEADERBOARDS[lobby_type],
        lobby_number=lobby_number,
        lobby_type=lobby_type,
        lobby_name=parse_lobby_name(lobby_number, lobby_text),
        teams=sort_teams(teams),
        template=template,
    )
