"""
Lobby Results - Core Package

This package contains the core modules for:
- Results table parsing (lobby_results.parsing)
- Rating schemes and match calculation (lobby_results.rating)
- Matching tables against the leaderboard and the backlog (lobby_results.resolution)
- Leaderboard and submissions ingestion (lobby_results.ingestion)
- Shared configuration and utilities
"""

from lobby_results.config import *
