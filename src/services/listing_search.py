"""Listing search - structured store query plus client-side refinement."""

from typing import Iterable, Optional

from src.models.listing import Listing
from src.models.search import ParsedFilters, SearchResult
from src.services.query_parser import parse
from src.services.supabase_client import find_listings
from src.utils.logging import (
    get_structured_logger,
    log_timing,
    mask_user_id,
    sanitize_message_text,
)

logger = get_structured_logger(__name__)


def matches_residual_text(listing: Listing, remaining_query: Optional[str]) -> bool:
    """Every whitespace-separated token must occur somewhere in the listing text."""
    if not remaining_query:
        return True
    haystack = listing.searchable_text()
    return all(token in haystack for token in remaining_query.lower().split())


def matches_listing(listing: Listing, filters: ParsedFilters) -> bool:
    """Client-side check of one listing against parsed filters."""
    if filters.max_price is not None and listing.price > filters.max_price:
        return False
    if filters.min_price is not None and listing.price < filters.min_price:
        return False
    if filters.bedrooms is not None and listing.bedrooms != filters.bedrooms:
        return False
    if filters.bathrooms is not None and listing.bathrooms != filters.bathrooms:
        return False
    if filters.city and filters.city.lower() not in (listing.city or "").lower():
        return False
    if filters.amenities:
        available = {amenity.lower() for amenity in listing.amenities}
        if not {required.lower() for required in filters.amenities} <= available:
            return False
    return matches_residual_text(listing, filters.remaining_query)


def refine_listings(listings: Iterable[Listing], filters: ParsedFilters) -> list[Listing]:
    """Keep the listings that satisfy every structured and residual-text predicate."""
    return [listing for listing in listings if matches_listing(listing, filters)]


async def search_listings(query: str, user_id: Optional[str] = None) -> SearchResult:
    """Parse ``query``, fetch matching listings from the store and refine them.

    The searching user's own listings are excluded.
    """
    filters = parse(query)

    with log_timing(
        "search_listings",
        logger=logger,
        user_id=mask_user_id(user_id) if user_id else None,
        query_preview=sanitize_message_text(query, max_length=100),
    ):
        candidates = await find_listings(filters, exclude_landlord_id=user_id)
        listings = refine_listings(candidates, filters)

    logger.info(
        "Listing search completed",
        candidates=len(candidates),
        results=len(listings),
        has_structured_filters=filters.has_structured_filters,
    )
    return SearchResult(query=query, filters=filters, listings=listings)
