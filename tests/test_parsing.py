"""
Tests for results table parsing functions and regex patterns.
"""

import pytest

from lobby_results.config import (
    BOARD_ITEMLESS,
    BOARD_SOLOS,
    BOARD_TEAMS,
    BATTLE_FFA,
    INSTA_3V3,
    RACE_ITEMLESS_4V4,
    RACE_ITEMLESS_FFA,
    RACE_ITEMS_DUOS,
    RACE_ITEMS_FFA,
    RACE_ITEMS_4V4,
)
from lobby_results.errors import ParseError
from lobby_results.models import Player, Team
from lobby_results.parsing.table_parser import (
    HEADER_RE,
    PENALTY_RE,
    parse_lobby_type,
    parse_player,
    parse_table,
    parse_track_score,
    remove_emojis,
    sort_teams,
    sum_expression,
)
from lobby_results.resolution.comparison import are_matches_equal

FFA_TABLE = """Lobby #12 - FFA
Alice 15|15|10
Bob 10|10|15
Carol 10|10|10
Dave 5|10|10
"""

DUOS_TABLE = """Lobby #5 - Duos
Team Red
Alice 20|20
Bob 15|15
Penalty 20
Team Blue
Carol 18|18
Dave 12|12
"""


class TestSumExpression:
    """Tests for sum_expression helper."""

    def test_parenthesized_negative(self):
        assert sum_expression("(-5)") == -5

    def test_mixed_signs(self):
        assert sum_expression("10+5-3") == 12

    def test_empty(self):
        assert sum_expression("") == 0


class TestParseTrackScore:
    """Tests for parse_track_score."""

    def test_plain_score(self):
        assert parse_track_score("12") == (12, 0)

    def test_inline_deduction(self):
        assert parse_track_score("8-2") == (8, 2)

    def test_sum_of_terms(self):
        assert parse_track_score("10+5") == (15, 0)

    def test_capped_score(self):
        assert parse_track_score("120") == (99, 0)


class TestRemoveEmojis:
    """Tests for remove_emojis."""

    def test_removes_symbols(self):
        assert remove_emojis("🔴 Red") == "Red"

    def test_keeps_plain_text(self):
        assert remove_emojis("Red Team") == "Red Team"


class TestHeaderRegex:
    """Tests for HEADER_RE pattern."""

    def test_matches_basic_header(self):
        match = HEADER_RE.match("Lobby #12 - FFA")
        assert match is not None
        assert match.groups() == ("12", "FFA")

    def test_case_insensitive_without_separators(self):
        match = HEADER_RE.match("LOBBY 7 4v4")
        assert match is not None
        assert match.groups() == ("7", "4v4")

    def test_no_match_without_number(self):
        assert HEADER_RE.match("Lobby - FFA") is None


class TestPenaltyRegex:
    """Tests for PENALTY_RE pattern."""

    def test_matches_penalty(self):
        assert PENALTY_RE.match("Penalty 20").groups() == ("Penalty", "20")

    def test_matches_bonus(self):
        assert PENALTY_RE.match("bonus 5").groups() == ("bonus", "5")

    def test_no_match_player_line(self):
        assert PENALTY_RE.match("Penaltyking 10|10") is None


class TestParseLobbyType:
    """Tests for parse_lobby_type."""

    def test_ffa(self):
        assert parse_lobby_type("FFA") == RACE_ITEMS_FFA

    def test_itemless_ffa(self):
        assert parse_lobby_type("Itemless FFA") == RACE_ITEMLESS_FFA

    def test_vs_separator(self):
        assert parse_lobby_type("Itemless 4 vs 4") == RACE_ITEMLESS_4V4

    def test_battle(self):
        assert parse_lobby_type("Battle FFA") == BATTLE_FFA

    def test_insta(self):
        assert parse_lobby_type("Insta 3v3") == INSTA_3V3

    def test_substring(self):
        assert parse_lobby_type("Duos (Saturday cup)") == RACE_ITEMS_DUOS

    def test_type_without_leaderboard(self):
        assert parse_lobby_type("Survival") is None

    def test_unknown(self):
        assert parse_lobby_type("Tennis") is None


class TestParsePlayer:
    """Tests for parse_player."""

    def test_flag_and_scores(self):
        player = parse_player("Alice [us] 12|15|9")
        assert player.name == "Alice"
        assert player.flag == "us"
        assert player.scores == (12, 15, 9)
        assert player.penalty == 0

    def test_suffix_and_inline_deductions(self):
        player = parse_player("Bob 10|8-2|11 (-3)")
        assert player.scores == (10, 8, 11)
        assert player.penalty == 5
        assert player.points == 24

    def test_positive_suffix_is_bonus(self):
        player = parse_player("Carol 10|10 (+4)")
        assert player.penalty == -4
        assert player.points == 24

    def test_empty_brackets_are_empty_flag(self):
        player = parse_player("Alice [] 12|15")
        assert player.name == "Alice"
        assert player.flag == ""
        assert player.scores == (12, 15)

    def test_one_letter_flag_dropped(self):
        player = parse_player("Alice [u] 12|15")
        assert player.flag == ""
        assert player.scores == (12, 15)

    def test_capped_track_score(self):
        assert parse_player("Dave 120|5").scores == (99, 5)


class TestParseTableFfa:
    """End-to-end parsing of a non-team lobby."""

    def test_one_team_per_player(self):
        match = parse_table(FFA_TABLE)
        assert match.lobby_number == 12
        assert match.lobby_type == RACE_ITEMS_FFA
        assert match.board_id == BOARD_SOLOS
        assert not match.is_team_mode
        assert len(match.teams) == 4
        assert all(len(team.players) == 1 for team in match.teams)

    def test_positions_by_score(self):
        match = parse_table(FFA_TABLE)
        assert [team.name for team in match.teams] == ["Alice", "Bob", "Carol", "Dave"]
        assert [team.position for team in match.teams] == [1, 2, 3, 4]
        assert [player.score for player in match.players] == [40, 35, 30, 25]

    def test_itemless_header(self):
        match = parse_table(FFA_TABLE.replace("FFA", "Itemless FFA"))
        assert match.lobby_type == RACE_ITEMLESS_FFA
        assert match.board_id == BOARD_ITEMLESS

    def test_lobby_name(self):
        match = parse_table("Lobby #3 - FFA #cup\nAlice 10|10\nBob 5|5")
        assert match.lobby_name == "Lobby #3 - FFA"

    def test_competition_ranking(self):
        match = parse_table("Lobby #1 - FFA\nAlice 5|5\nBob 5|5\nCarol 3|2")
        assert [team.position for team in match.teams] == [1, 1, 3]
        assert [player.position for player in match.players] == [1, 1, 3]

    def test_keeps_table_order(self):
        match = parse_table("Lobby #1 - FFA\nCarol 1|1\nAlice 5|5\nBob 3|3")
        orders = {team.name: team.table_order for team in match.teams}
        assert orders == {"Carol": 0, "Alice": 1, "Bob": 2}


class TestParseTableTeams:
    """End-to-end parsing of team lobbies."""

    def test_penalty_line_applies_to_team(self):
        match = parse_table(DUOS_TABLE)
        assert match.lobby_type == RACE_ITEMS_DUOS
        assert match.board_id == BOARD_TEAMS
        assert match.is_team_mode
        teams = {team.name: team for team in match.teams}
        assert teams["Team Red"].score == 70
        assert teams["Team Red"].penalty == 20
        assert teams["Team Red"].points == 50
        assert all(player.penalty == 0 for player in teams["Team Red"].players)

    def test_penalty_changes_team_positions(self):
        match = parse_table(DUOS_TABLE)
        assert [(team.name, team.position) for team in match.teams] == [("Team Blue", 1), ("Team Red", 2)]

    def test_empty_flag_player_stays_in_team(self):
        match = parse_table(DUOS_TABLE.replace("Alice 20|20", "Alice [] 20|20"))
        teams = {team.name: team for team in match.teams}
        assert set(teams) == {"Team Red", "Team Blue"}
        assert [player.name for player in teams["Team Red"].players] == ["Alice", "Bob"]

    def test_bonus_line_reduces_penalty(self):
        match = parse_table(DUOS_TABLE.replace("Penalty 20", "Bonus 5"))
        teams = {team.name: team for team in match.teams}
        assert teams["Team Red"].penalty == -5
        assert teams["Team Red"].points == 75

    def test_in_team_positions(self):
        match = parse_table(DUOS_TABLE)
        red = next(team for team in match.teams if team.name == "Team Red")
        assert [(player.name, player.in_team_position) for player in red.players] == [("Alice", 1), ("Bob", 2)]
        assert [(player.name, player.position) for player in match.players] == [
            ("Carol", 2), ("Dave", 4), ("Alice", 1), ("Bob", 3),
        ]

    def test_marker_color_and_penalty(self):
        table = "Lobby #2 - 4v4\nRed Team #ff0000 (-10)\nAlice 10|10\nBlue Team\nBob 5|5"
        match = parse_table(table)
        assert match.lobby_type == RACE_ITEMS_4V4
        teams = {team.name: team for team in match.teams}
        assert teams["Red Team"].color == "#ff0000"
        assert teams["Red Team"].penalty == 10
        assert teams["Blue Team"].color == ""

    def test_emoji_marker_gets_default_name(self):
        match = parse_table("Lobby #2 - Duos\n🔴\nAlice 10|10\n🔵\nBob 5|5")
        assert sorted(team.name for team in match.teams) == ["Team A", "Team B"]

    def test_consecutive_markers_keep_the_last(self):
        match = parse_table("Lobby #2 - Duos\nRed\nBlue\nAlice 10|10\nGreen\nBob 5|5")
        assert sorted(team.name for team in match.teams) == ["Blue", "Green"]
        assert "Red" not in match.template

    def test_player_before_marker(self):
        with pytest.raises(ParseError, match="Invalid team initialization"):
            parse_table("Lobby #2 - Duos\nAlice 10|10\nRed\nBob 5|5")


class TestParseTableErrors:
    """Tables that cannot be parsed."""

    def test_missing_header(self):
        with pytest.raises(ParseError):
            parse_table("Alice 10|10\nBob 5|5")

    def test_unsupported_lobby_type(self):
        with pytest.raises(ParseError):
            parse_table("Lobby #1 - Survival\nAlice 10|10\nBob 5|5")

    def test_zero_lobby_number(self):
        with pytest.raises(ParseError):
            parse_table("Lobby #0 - FFA\nAlice 10|10\nBob 5|5")

    def test_duplicate_player(self):
        with pytest.raises(ParseError, match="Duplicate"):
            parse_table("Lobby #1 - FFA\nAlice 10|10\nAlice 5|5")

    def test_single_player(self):
        with pytest.raises(ParseError, match="Invalid teams"):
            parse_table("Lobby #1 - FFA\nAlice 10|10")

    def test_input_too_large(self):
        with pytest.raises(ParseError, match="Input too large"):
            parse_table(FFA_TABLE + "x" * 20_000)


class TestTemplate:
    """Tests for the canonical template."""

    def test_reparsed_template_is_equal(self):
        for table in (FFA_TABLE, DUOS_TABLE):
            match = parse_table(table)
            assert are_matches_equal(parse_table(match.template), match)

    def test_keeps_comments(self):
        table = "// posted by host\nLobby #12 - FFA\nAlice 15|15|10\n// late join\nBob 10|10|15"
        template = parse_table(table).template
        assert template.startswith("// posted by host\n\nLobby #12 - FFA")
        assert "// late join" in template

    def test_drops_unrecognized_lines(self):
        template = parse_table("Lobby #12 - FFA\nAlice 15|15|10\n???\nBob 10|10|15").template
        assert "???" not in template


class TestSortTeams:
    """Tests for sort_teams."""

    def test_resorting_keeps_table_order(self):
        teams = (
            Team(name="A", players=(Player(name="A", scores=(1,)),)),
            Team(name="B", players=(Player(name="B", scores=(9,)),)),
        )
        ranked = sort_teams(teams)
        assert [team.name for team in ranked] == ["B", "A"]
        assert [team.table_order for team in ranked] == [1, 0]

        reranked = sort_teams(ranked)
        assert [team.table_order for team in reranked] == [1, 0]
        assert [team.position for team in reranked] == [1, 2]
