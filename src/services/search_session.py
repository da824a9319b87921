"""Search session - state behind one rentee's search view.

Structured filters are applied to the listing store; the typed free-text query
refines the fetched listings locally on every keystroke. Store fetches follow
last-request-wins: a response for an older request never replaces the results
of a newer one.
"""

from typing import Optional

from src.models.listing import Listing
from src.models.search import ParsedFilters
from src.services.listing_search import refine_listings
from src.services.query_parser import parse
from src.services.search_history import SearchHistoryRecorder, get_search_history_recorder
from src.services.supabase_client import find_listings
from src.utils.errors import SearchError
from src.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


class SearchSession:
    """Filters, fetched listings and typed query for one search view."""

    def __init__(
        self,
        user_id: Optional[str] = None,
        recorder: Optional[SearchHistoryRecorder] = None,
        filters: Optional[ParsedFilters] = None,
    ):
        self.user_id = user_id
        self.recorder = recorder or get_search_history_recorder()
        self.filters = filters or ParsedFilters()
        self.listings: list[Listing] = []
        self.filtered_listings: list[Listing] = []
        self.search_query = ""
        self.error: Optional[str] = None
        self._latest_request = 0

    async def refresh(self) -> Optional[list[Listing]]:
        """Fetch listings for the current structured filters.

        Returns the new listings, or ``None`` when a newer request superseded
        this one before its response arrived.
        """
        self._latest_request += 1
        request_id = self._latest_request
        filters = self.filters

        try:
            listings = await find_listings(filters, exclude_landlord_id=self.user_id)
        except Exception as e:
            if request_id != self._latest_request:
                return None
            self.error = str(e) or "Failed to fetch listings"
            self.listings = []
            self.filtered_listings = []
            logger.error(
                "Listing fetch failed",
                user_id=mask_user_id(self.user_id) if self.user_id else None,
                error=self.error
            )
            raise SearchError(self.error) from e

        if request_id != self._latest_request:
            logger.debug(
                "Discarding stale listing response",
                request_id=request_id,
                latest_request=self._latest_request
            )
            return None

        self.error = None
        self.listings = listings
        self._apply_search_query()
        return listings

    async def type_query(self, query: str) -> list[Listing]:
        """Handle a keystroke: refine locally and schedule history persistence."""
        self.search_query = query
        self._apply_search_query()
        if query.strip():
            await self.recorder.record(self.user_id, query)
        return self.filtered_listings

    async def submit(self, query: Optional[str] = None) -> Optional[list[Listing]]:
        """Promote the recognised filters of ``query`` to the store query and refetch."""
        query = self.search_query if query is None else query
        parsed = parse(query)
        self.filters = self.filters.merged_with(parsed)
        self.search_query = ""
        return await self.refresh()

    async def reset(self) -> Optional[list[Listing]]:
        """Clear every filter and the typed query, then refetch."""
        self.filters = ParsedFilters()
        self.search_query = ""
        return await self.refresh()

    def _apply_search_query(self) -> None:
        query = self.search_query.strip()
        if not query:
            self.filtered_listings = list(self.listings)
            return
        self.filtered_listings = refine_listings(self.listings, parse(query))
