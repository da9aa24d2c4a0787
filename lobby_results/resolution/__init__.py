"""
Match Resolution

Modules:
- comparison: Equality and duplicate checks between matches
- engine: Resolve a table from the leaderboard or by replaying the backlog
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "MatchResolutionEngine":
        from lobby_results.resolution.engine import MatchResolutionEngine
        return MatchResolutionEngine
    if name == "resolve":
        from lobby_results.resolution.engine import resolve
        return resolve
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
