"""
Shared utilities for the Lobby Results system.

This module provides common functions used across multiple modules
to avoid code duplication.
"""

import logging
import re
from datetime import datetime

import pandas as pd

# --- Shared Regex Patterns ---
# Table text posted inside a Discord code block: ```...```
CODE_BLOCK_RE = re.compile(r"```([\s\S]*?)```")

# Lobby number inside a title or team tag: "Lobby #12 - FFA", "#12"
LOBBY_NUMBER_RE = re.compile(r"#(\d+)")

WHITESPACE_RE = re.compile(r"\s")


def extract_table_text(content: str) -> str:
    """Return the text of the first code block in a message, or the whole message."""
    match = CODE_BLOCK_RE.search(content)
    if match:
        return match.group(1)
    return content


def normalize_whitespace(text: str) -> str:
    """Replace every whitespace character by a plain space (used as a lookup key)."""
    return WHITESPACE_RE.sub(" ", text)


# --- Logging Setup ---
def setup_logging(name: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__ from the calling module)
        level: Logging level (default: INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


# --- Ranking ---
def competition_ranks(values: list[float]) -> list[int]:
    """
    Assign competition ("1224") ranks to values already sorted in descending order.

    Equal values share a rank and the next distinct value skips accordingly,
    so [10, 10, 5] ranks as [1, 1, 3].

    Args:
        values: Scores sorted from best to worst

    Returns:
        List of 1-based ranks, aligned with values
    """
    ranks = []
    for i, value in enumerate(values):
        if i > 0 and value == values[i - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(i + 1)
    return ranks


# --- Timestamps ---
def to_datetime(value) -> datetime | None:
    """
    Convert a remote timestamp into a timezone-aware UTC datetime.

    Numbers (and numeric strings) are epoch milliseconds, anything else is
    handed to pandas as a date string or datetime. Naive values are read as
    UTC. Empty and non-positive values give None.

    Args:
        value: Epoch milliseconds, ISO string, datetime or None

    Returns:
        UTC datetime, or None if the value is missing
    """
    if value is None or value == "":
        return None
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value)
    if isinstance(value, (int, float)):
        if value <= 0:
            return None
        return pd.to_datetime(value, unit="ms", utc=True).to_pydatetime()
    return pd.to_datetime(value, utc=True).to_pydatetime()


# --- Validation ---
def validate_input_size(text: str, max_size: int) -> None:
    """
    Validate that input text does not exceed maximum size.

    Args:
        text: Input text to validate
        max_size: Maximum allowed size in characters

    Raises:
        ValueError: If input exceeds max_size
    """
    if len(text) > max_size:
        raise ValueError(
            f"Input too large: {len(text):,} characters. "
            f"Maximum allowed: {max_size:,} characters"
        )


__all__ = [
    # Logging
    'setup_logging',
    # Ranking
    'competition_ranks',
    # Timestamps
    'to_datetime',
    # Validation
    'validate_input_size',
    # Message parsing
    'CODE_BLOCK_RE',
    'LOBBY_NUMBER_RE',
    'extract_table_text',
    'normalize_whitespace',
]
