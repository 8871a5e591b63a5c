"""Bounded per-user command history."""

import logging
import os
from datetime import datetime
from typing import Protocol

from virtual_assistant.db.users import HistoryEntry, User

from .errors import StorageError

logger = logging.getLogger(__name__)

MAX_HISTORY_ITEMS = 100


def get_max_history_items() -> int:
    """Get the history cap from ASSISTANT_MAX_HISTORY_ITEMS (default: 100)."""
    raw = os.getenv("ASSISTANT_MAX_HISTORY_ITEMS")
    if not raw:
        return MAX_HISTORY_ITEMS
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid ASSISTANT_MAX_HISTORY_ITEMS=%r, using %d", raw, MAX_HISTORY_ITEMS)
        return MAX_HISTORY_ITEMS
    if value < 1:
        logger.warning("ASSISTANT_MAX_HISTORY_ITEMS must be positive, using %d", MAX_HISTORY_ITEMS)
        return MAX_HISTORY_ITEMS
    return value


class HistoryRepository(Protocol):
    def save_history(self, user: User) -> None: ...


class HistoryStore:
    """Append commands to a user's history, evicting the oldest past the cap."""

    def __init__(self, repository: HistoryRepository, max_items: int = MAX_HISTORY_ITEMS) -> None:
        if not isinstance(max_items, int) or isinstance(max_items, bool) or max_items < 1:
            raise ValueError(f"max_items must be a positive integer, got {max_items!r}")
        self.repository = repository
        self.max_items = max_items

    def append(self, user: User, text: str, timestamp: datetime) -> None:
        """Append ``text`` to the user's history and persist it.

        Empty or non-string text is ignored; callers validate first.

        Raises:
            StorageError: If the updated history could not be persisted.
        """
        if not isinstance(text, str) or not text.strip():
            return

        history = list(user.history or [])
        history.append(HistoryEntry(text=text, created_at=timestamp))
        if len(history) > self.max_items:
            history = history[-self.max_items :]
        user.history = history

        try:
            self.repository.save_history(user)
        except Exception as e:
            logger.error("Failed to persist history for user %s: %s", user.id, e, exc_info=True)
            raise StorageError() from e
