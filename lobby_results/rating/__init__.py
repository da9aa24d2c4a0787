"""
Rating Calculation

Modules:
- base: Shared rating scheme behavior
- elo: Elo rating scheme
- mmr: MMR rating scheme
- calculator: Match results, tiers and simulated board snapshots
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "MatchCalculator":
        from lobby_results.rating.calculator import MatchCalculator
        return MatchCalculator
    if name == "get_rating_scheme":
        from lobby_results.rating.calculator import get_rating_scheme
        return get_rating_scheme
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
