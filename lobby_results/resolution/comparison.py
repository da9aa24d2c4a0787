"""
Match comparison predicates used to line up parsed tables, backlog submissions
and matches already scored on the remote board.

- equal: the same real-world match (same players with the same points)
- duplicated: the same table posted again, possibly with corrected scores
"""

from lobby_results.models import Match, Player, Team


def _same_lobby(match1: Match, match2: Match) -> bool:
    return (
        match1.board_id == match2.board_id
        and int(match1.lobby_number) == int(match2.lobby_number)
        and match1.lobby_type == match2.lobby_type
    )


def _player_total(player: Player) -> int:
    return player.score - abs(player.penalty)


def _players_order(team: Team) -> tuple[str, ...]:
    if team.table_players_order is not None:
        return tuple(team.table_players_order)
    return tuple(player.name for player in team.players)


def are_team_penalties_same(teams1, teams2) -> bool:
    """Teams with the same ordered player names must carry the same penalty."""
    if len(teams1) != len(teams2):
        return False

    for team1 in teams1:
        for team2 in teams2:
            if _players_order(team1) == _players_order(team2) and team1.penalty != team2.penalty:
                return False
    return True


def are_matches_equal(match1: Match | None, match2: Match | None) -> bool:
    """
    Check whether two matches are the same real-world match.

    Both must be on the same board with the same lobby number and type, have
    the same number of teams and the same player names, matching team
    penalties, and every player must have the same points (track scores minus
    penalty) in both.
    """
    if match1 is None or match2 is None:
        return False
    if not _same_lobby(match1, match2):
        return False
    if len(match1.teams) != len(match2.teams):
        return False
    if not are_team_penalties_same(match1.teams, match2.teams):
        return False

    players1 = {player.name: player for player in match1.players}
    players2 = {player.name: player for player in match2.players}
    if players1.keys() != players2.keys():
        return False

    return all(_player_total(player) == _player_total(players2[name]) for name, player in players1.items())


def are_matches_duplicated(match1: Match | None, match2: Match | None) -> bool:
    """
    Check whether two matches are the same table posted twice.

    Scores are not compared: every team only needs a counterpart listing the
    same players in the same order.
    """
    if match1 is None or match2 is None:
        return False
    if not _same_lobby(match1, match2):
        return False
    if len(match1.teams) != len(match2.teams):
        return False

    orders2 = [_players_order(team) for team in match2.teams]
    return all(_players_order(team) in orders2 for team in match1.teams)
