"""
Lobby Results Prediction

Reads a pasted results table, resolves it against the live leaderboard (and
an optional Discord export of the results submissions channel) and prints
the rating changes of every player.

Usage:
    python -m lobby_results.predict
    python -m lobby_results.predict --submissions data/results_submissions.json

    Programmatic usage:
        from lobby_results.predict import predict_lobby
        resolution = predict_lobby(text)
"""

import argparse
import sys

import pandas as pd

from lobby_results.config import LEADERBOARD_API_URL, SUBMISSIONS_EXPORT
from lobby_results.errors import ResultsError
from lobby_results.ingestion.leaderboard_client import LeaderboardClient
from lobby_results.ingestion.submissions import DiscordExportFeed
from lobby_results.rating.calculator import results_to_frame
from lobby_results.resolution.engine import MatchResolutionEngine, Resolution
from lobby_results.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

REPORT_COLUMNS = {
    'position': 'Pos',
    'name': 'Player',
    'team': 'Team',
    'original_rating': 'Rating',
    'delta': 'Change',
    'final_rating': 'New rating',
    'original_ranking': 'Rank',
    'final_ranking': 'New rank',
    'final_tier': 'Tier',
}


def predict_lobby(text: str, api_url: str = LEADERBOARD_API_URL, submissions_file=None) -> Resolution:
    """
    Resolve a pasted table.

    Args:
        text: Results table as posted
        api_url: Leaderboard GraphQL endpoint
        submissions_file: Discord export used as backlog, or None for none

    Returns:
        Resolution with the match and its results

    Raises:
        ResultsError: If the table cannot be resolved
    """
    feed = DiscordExportFeed(submissions_file) if submissions_file else None
    engine = MatchResolutionEngine(LeaderboardClient(api_url), feed)
    return engine.resolve_table(text)


def format_report(resolution: Resolution) -> str:
    match = resolution.match
    title = match.lobby_name or f"Lobby #{match.lobby_number}"
    status = "prediction" if resolution.is_prediction else "submitted"

    df = results_to_frame(resolution.results)
    if not match.is_team_mode:
        df = df.drop(columns=['team'])
    df = df[[column for column in REPORT_COLUMNS if column in df.columns]]
    df = df.rename(columns=REPORT_COLUMNS)
    df['Rating'] = df['Rating'].round(1)
    df['Change'] = df['Change'].map(lambda delta: f"{delta:+.1f}")
    df['New rating'] = df['New rating'].round(1)
    for column in ('Rank', 'New rank'):
        df[column] = df[column].map(lambda ranking: "-" if pd.isna(ranking) else str(int(ranking)))

    return f"{title} ({status})\n\n{df.to_string(index=False)}"


def read_pasted_table() -> str:
    """Read lines from stdin until two consecutive empty lines or EOF."""
    lines = []
    empty_count = 0

    try:
        while True:
            line = input()
            if line == "":
                empty_count += 1
                if empty_count >= 2:
                    break
            else:
                empty_count = 0
            lines.append(line)
    except EOFError:
        pass

    return "\n".join(lines)


def main(argv=None):
    """CLI interface for lobby results prediction."""
    parser = argparse.ArgumentParser(description='Predict rating changes of a lobby results table')
    parser.add_argument(
        '--submissions',
        dest='submissions_file',
        default=None,
        help=f'Discord export of the results submissions channel (e.g. {SUBMISSIONS_EXPORT})'
    )
    parser.add_argument(
        '--api-url',
        dest='api_url',
        default=LEADERBOARD_API_URL,
        help=f'Leaderboard GraphQL endpoint (default: {LEADERBOARD_API_URL})'
    )
    args = parser.parse_args(argv)

    print("=" * 60)
    print("Lobby Results Prediction")
    print("=" * 60)
    print("\nPaste the results table below.")
    print("When finished, press Enter twice (empty line) to process.\n")
    print("-" * 60)

    text = read_pasted_table()
    if not text.strip():
        print("\nNo input received. Exiting.")
        sys.exit(1)

    print("-" * 60)

    try:
        resolution = predict_lobby(text, api_url=args.api_url, submissions_file=args.submissions_file)
    except ResultsError as e:
        logger.warning(f"Resolution failed: {e}")
        print(f"\n{e.user_message}")
        sys.exit(1)

    print()
    print(format_report(resolution))


if __name__ == "__main__":
    main()
