"""
Central configuration for the Lobby Results system.

All shared constants and configuration values should be defined here
to avoid duplication and ensure consistency across modules.
"""

from pathlib import Path

# --- Project Paths ---
PROJECT_ROOT = Path(__file__).parent.parent
DATA_FOLDER = PROJECT_ROOT / "data"
SUBMISSIONS_EXPORT = DATA_FOLDER / "results_submissions.json"

# --- Lobby Types ---
RACE_ITEMS_FFA = "race_ffa"
RACE_ITEMS_DUOS = "race_duos"
RACE_ITEMS_3V3 = "race_3v3"
RACE_ITEMS_4V4 = "race_4v4"
RACE_SURVIVAL = "race_survival"
RACE_ITEMLESS_1V1 = "race_itemless_1v1"
RACE_ITEMLESS_FFA = "race_itemless_ffa"
RACE_ITEMLESS_DUOS = "race_itemless_duos"
RACE_ITEMLESS_3V3 = "race_itemless_3v3"
RACE_ITEMLESS_4V4 = "race_itemless_4v4"
BATTLE_1V1 = "battle_1v1"
BATTLE_FFA = "battle_ffa"
BATTLE_DUOS = "battle_duos"
BATTLE_3V3 = "battle_3v3"
BATTLE_4V4 = "battle_4v4"
INSTA_DUOS = "insta_duos"
INSTA_3V3 = "insta_3v3"
INSTA_4V4 = "insta_4v4"

DUO_MODES = frozenset({RACE_ITEMS_DUOS, RACE_ITEMLESS_DUOS, BATTLE_DUOS})
THREE_VS_THREE_MODES = frozenset({RACE_ITEMS_3V3, RACE_ITEMLESS_3V3, BATTLE_3V3})
FOUR_VS_FOUR_MODES = frozenset({RACE_ITEMS_4V4, RACE_ITEMLESS_4V4, BATTLE_4V4})
INSTA_MODES = frozenset({INSTA_DUOS, INSTA_3V3, INSTA_4V4})
TEAM_MODES = DUO_MODES | THREE_VS_THREE_MODES | FOUR_VS_FOUR_MODES | INSTA_MODES

# --- Leaderboards ---
BOARD_SOLOS = "8-jFwF"
BOARD_ITEMLESS = "Yg67aT"
BOARD_TEAMS = "9ur6s5"
BOARD_INSTA_TEAMS = "3NM8MD"
BOARD_BATTLE = "2pgqJQ"

# Lobby type -> board id. Order matters: substring lookups walk it top-down.
# None means the lobby type is known but has no ranked leaderboard.
LEADERBOARDS = {
    RACE_ITEMS_FFA: BOARD_SOLOS,
    RACE_ITEMS_DUOS: BOARD_TEAMS,
    RACE_ITEMS_3V3: BOARD_TEAMS,
    RACE_ITEMS_4V4: BOARD_TEAMS,
    RACE_SURVIVAL: None,
    RACE_ITEMLESS_1V1: None,
    RACE_ITEMLESS_FFA: BOARD_ITEMLESS,
    RACE_ITEMLESS_DUOS: BOARD_ITEMLESS,
    RACE_ITEMLESS_3V3: BOARD_ITEMLESS,
    RACE_ITEMLESS_4V4: BOARD_ITEMLESS,
    BATTLE_1V1: None,
    BATTLE_FFA: BOARD_BATTLE,
    BATTLE_DUOS: BOARD_BATTLE,
    BATTLE_3V3: BOARD_BATTLE,
    BATTLE_4V4: BOARD_BATTLE,
    INSTA_DUOS: BOARD_INSTA_TEAMS,
    INSTA_3V3: BOARD_INSTA_TEAMS,
    INSTA_4V4: BOARD_INSTA_TEAMS,
}

# Index into the scheme parameter lists (scaling factors, baselines)
CATEGORY_SOLO = 0
CATEGORY_DUO = 1
CATEGORY_3V3 = 2
CATEGORY_4V4 = 3

TEAM_SIZE_CATEGORY = {
    RACE_ITEMS_FFA: CATEGORY_SOLO,
    RACE_SURVIVAL: CATEGORY_SOLO,
    RACE_ITEMLESS_1V1: CATEGORY_SOLO,
    RACE_ITEMLESS_FFA: CATEGORY_SOLO,
    BATTLE_1V1: CATEGORY_SOLO,
    BATTLE_FFA: CATEGORY_SOLO,
    RACE_ITEMS_DUOS: CATEGORY_DUO,
    RACE_ITEMLESS_DUOS: CATEGORY_DUO,
    BATTLE_DUOS: CATEGORY_DUO,
    INSTA_DUOS: CATEGORY_DUO,
    RACE_ITEMS_3V3: CATEGORY_3V3,
    RACE_ITEMLESS_3V3: CATEGORY_3V3,
    BATTLE_3V3: CATEGORY_3V3,
    INSTA_3V3: CATEGORY_3V3,
    RACE_ITEMS_4V4: CATEGORY_4V4,
    RACE_ITEMLESS_4V4: CATEGORY_4V4,
    BATTLE_4V4: CATEGORY_4V4,
    INSTA_4V4: CATEGORY_4V4,
}

# Default (teams, players) per lobby type, used to guess the lobby type of
# remote matches whose title does not name one
DEFAULT_LOBBY_SIZES = {
    RACE_ITEMS_FFA: (8, 8),
    RACE_ITEMS_DUOS: (4, 8),
    RACE_ITEMS_3V3: (2, 6),
    RACE_ITEMS_4V4: (2, 8),
    RACE_SURVIVAL: (8, 8),
    RACE_ITEMLESS_1V1: (2, 2),
    RACE_ITEMLESS_FFA: (4, 4),
    RACE_ITEMLESS_DUOS: (4, 8),
    RACE_ITEMLESS_3V3: (2, 6),
    RACE_ITEMLESS_4V4: (2, 8),
    BATTLE_1V1: (2, 2),
    BATTLE_FFA: (4, 4),
    BATTLE_DUOS: (2, 4),
    BATTLE_3V3: (2, 6),
    BATTLE_4V4: (2, 8),
    INSTA_DUOS: (4, 8),
    INSTA_3V3: (2, 6),
    INSTA_4V4: (2, 8),
}

# --- Rating Schemes ---
RATING_SCHEME_ELO = "elo"
RATING_SCHEME_MMR = "mk8dx_mmr"

# MMR formula guards: rating differences are clamped to this and scaled by it + 1
MMR_DIFF_FLOOR = -9997
MMR_DIFF_SCALE = 9998

ELO_SCALE = 400  # Rating difference giving 10:1 expected odds

# --- Table Parser ---
MAX_TRACK_SCORE = 99
MAX_PENALTY = 99
MAX_TRACKS = 32
MAX_INPUT_SIZE = 10_000  # Maximum table text size in characters
DEFAULT_TEAM_PREFIX = "Team "

# --- Remote Leaderboard ---
LEADERBOARD_API_URL = "https://gb.hlorenzi.com/api/v1/graphql"
REQUEST_TIMEOUT = 12  # seconds
BOARD_MATCH_HISTORY = 100  # Most recent matches returned with a board

# --- Results Submissions Feed ---
SUBMISSIONS_HISTORY_LIMIT = 100
