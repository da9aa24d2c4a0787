"""
Results Submission Feeds

Sources of recently posted results tables, used as the backlog of matches
not yet scored on the leaderboard. A feed returns submissions ordered from
oldest to newest.

Usage:
    from lobby_results.ingestion.submissions import DiscordExportFeed
    submissions = DiscordExportFeed("data/results-submissions.json").get_recent_submissions()
"""

import json
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from lobby_results.config import SUBMISSIONS_HISTORY_LIMIT
from lobby_results.models import Submission
from lobby_results.utils import extract_table_text, setup_logging, to_datetime

# --- Module Logger ---
logger = setup_logging(__name__)


@runtime_checkable
class SubmissionFeed(Protocol):
    """Anything that lists recent submissions, oldest first."""

    def get_recent_submissions(self) -> list[Submission]:
        ...


class StaticSubmissionFeed:
    """In-memory feed, e.g. for tables collected by another frontend."""

    def __init__(self, submissions: Iterable[Submission] = (), limit: int = SUBMISSIONS_HISTORY_LIMIT):
        self.submissions = list(submissions)
        self.limit = limit

    def get_recent_submissions(self) -> list[Submission]:
        submissions = sorted(self.submissions, key=lambda submission: submission.posted_at)
        return submissions[-self.limit:] if self.limit else submissions


class DiscordExportFeed:
    """
    Feed read from a Discord channel export (JSON).

    The export is either a dict with a "messages" list or a bare list of
    messages. A message's table is the text of its first code block, or the
    whole content when it has none.

    Args:
        json_file: Path to the export
        limit: Number of most recent messages to keep
    """

    def __init__(self, json_file, limit: int = SUBMISSIONS_HISTORY_LIMIT):
        self.json_file = Path(json_file)
        self.limit = limit

    def get_recent_submissions(self) -> list[Submission]:
        with open(self.json_file, encoding="utf-8") as f:
            json_data = json.load(f)

        # Handle dict with "messages" key or plain list
        if isinstance(json_data, dict) and "messages" in json_data:
            messages_list = json_data["messages"]
        elif isinstance(json_data, list):
            messages_list = json_data
        else:
            logger.warning(f"Skipping {self.json_file}: unrecognized format")
            return []

        submissions = []
        for msg in messages_list:
            content = msg.get("content")
            if not content:
                continue

            try:
                posted_at = to_datetime(msg.get("timestamp"))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping message id {msg.get('id')}: bad timestamp ({e})")
                continue
            if posted_at is None:
                continue

            submissions.append(Submission(text=extract_table_text(content), posted_at=posted_at))

        submissions.sort(key=lambda submission: submission.posted_at)
        if self.limit:
            submissions = submissions[-self.limit:]
        logger.info(f"Loaded {len(submissions)} submissions from {self.json_file.name}")
        return submissions
