"""
Data Ingestion

Modules:
- leaderboard_client: Leaderboard GraphQL client
- submissions: Results submissions feeds (Discord export, in-memory)
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "LeaderboardClient":
        from lobby_results.ingestion.leaderboard_client import LeaderboardClient
        return LeaderboardClient
    if name == "DiscordExportFeed":
        from lobby_results.ingestion.submissions import DiscordExportFeed
        return DiscordExportFeed
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
