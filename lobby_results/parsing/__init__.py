"""
Results Table Parsing

Modules:
- table_parser: Parse posted results tables into ranked matches
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "parse_table":
        from lobby_results.parsing.table_parser import parse_table
        return parse_table
    if name == "sort_teams":
        from lobby_results.parsing.table_parser import sort_teams
        return sort_teams
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
