"""Search history service - debounce keystrokes and persist meaningful searches."""

import os
import asyncio
from typing import Optional

from src.models.search import SearchHistoryEntry
from src.services.query_parser import parse, strip_prefix
from src.services.supabase_client import insert_search_history
from src.utils.logging import (
    get_structured_logger,
    mask_user_id,
    sanitize_message_text,
)

logger = get_structured_logger(__name__)

DEFAULT_DEBOUNCE_MS = int(os.environ.get("SEARCH_HISTORY_DEBOUNCE_MS", "800"))


def is_meaningful_search(query: str) -> bool:
    """Decide whether a typed query is worth saving to history.

    A single token needs at least four characters; several tokens need at
    least one of three characters or more.
    """
    cleaned = strip_prefix(query or "").strip().lower()
    if not cleaned:
        return False

    tokens = cleaned.split()
    if len(tokens) == 1:
        return len(tokens[0]) >= 4

    return any(len(token) >= 3 for token in tokens)


class SearchHistoryRecorder:
    """Save a rentee's search once typing has been idle for the debounce window."""

    def __init__(self, window_ms: int = DEFAULT_DEBOUNCE_MS):
        self.window_seconds = window_ms / 1000
        self.pending: dict[str, str] = {}  # rentee_id -> latest query
        self.timers: dict[str, asyncio.Task] = {}
        self.last_saved: dict[str, str] = {}
        logger.info(
            "SearchHistoryRecorder initialized",
            debounce_window_ms=window_ms
        )

    async def record(self, rentee_id: Optional[str], query: str) -> None:
        """Schedule ``query`` to be saved; a newer call for the rentee resets the timer."""
        query = (query or "").strip()
        if not rentee_id or not query:
            return

        self.pending[rentee_id] = query

        if rentee_id in self.timers:
            self.timers[rentee_id].cancel()
            logger.debug(
                "Search history timer reset",
                rentee_id=mask_user_id(rentee_id)
            )

        self.timers[rentee_id] = asyncio.create_task(self._save_after_delay(rentee_id))

    async def flush(self) -> None:
        """Wait for every scheduled save to finish."""
        timers = list(self.timers.values())
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

    def cancel(self, rentee_id: str) -> None:
        """Drop any pending save for the rentee."""
        task = self.timers.pop(rentee_id, None)
        if task:
            task.cancel()
        self.pending.pop(rentee_id, None)

    async def _save_after_delay(self, rentee_id: str) -> None:
        await asyncio.sleep(self.window_seconds)

        query = self.pending.pop(rentee_id, None)
        self.timers.pop(rentee_id, None)
        if query is None:
            return

        if not is_meaningful_search(query):
            logger.debug(
                "Skipping search history for non-meaningful query",
                rentee_id=mask_user_id(rentee_id)
            )
            return

        if self.last_saved.get(rentee_id) == query:
            return

        await self.save(rentee_id, query)

    async def save(self, rentee_id: str, query: str) -> bool:
        """Persist one search immediately. Failures are logged, never raised."""
        entry = SearchHistoryEntry.from_filters(rentee_id, query, parse(query))
        try:
            await insert_search_history(entry)
        except Exception as e:
            logger.warning(
                "Failed to save search history",
                rentee_id=mask_user_id(rentee_id),
                error=str(e)
            )
            return False

        self.last_saved[rentee_id] = query
        logger.info(
            "Search history saved",
            rentee_id=mask_user_id(rentee_id),
            query_preview=sanitize_message_text(query, max_length=100),
            city=entry.city
        )
        return True


# Global recorder instance
_search_history_recorder: Optional[SearchHistoryRecorder] = None


def get_search_history_recorder() -> SearchHistoryRecorder:
    """Get or create global search history recorder."""
    global _search_history_recorder
    if _search_history_recorder is None:
        window = int(os.environ.get("SEARCH_HISTORY_DEBOUNCE_MS", "800"))
        _search_history_recorder = SearchHistoryRecorder(window_ms=window)
    return _search_history_recorder
