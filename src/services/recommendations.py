"""Recommendation service - blend booking and search history into a relaxed listing query."""

import os
from collections import Counter
from typing import Iterable

from src.models.booking import Booking
from src.models.listing import Listing
from src.models.recommendation import RecommendationPreferences
from src.models.search import SearchHistoryEntry
from src.services.supabase_client import (
    find_recommendation_candidates,
    get_recent_bookings,
    get_search_history,
)
from src.utils.logging import get_structured_logger, log_timing, mask_user_id

logger = get_structured_logger(__name__)

DEFAULT_RECOMMENDATION_LIMIT = int(os.environ.get("RECOMMENDATION_LIMIT", "8"))

# Searched cities count only once they were searched this many times.
MIN_SEARCH_CITY_OCCURRENCES = 2
MIN_PRICE_FACTOR = 0.7
MAX_PRICE_FACTOR = 1.3


def _unique(values: Iterable) -> list:
    return list(dict.fromkeys(values))


def derive_preferences(
    bookings: list[Booking],
    searches: list[SearchHistoryEntry],
) -> RecommendationPreferences:
    """Deterministic preference envelope from past bookings and searches.

    Any booked city is trusted; a searched city only after repeated searches.
    Prices widen the observed range by 30% on both sides.
    """
    booked_listings = [booking.listings for booking in bookings if booking.listings]

    booking_cities = _unique(listing.city for listing in booked_listings if listing.city)
    search_city_counts = Counter(search.city for search in searches if search.city)
    strong_search_cities = [
        city for city, count in search_city_counts.items() if count >= MIN_SEARCH_CITY_OCCURRENCES
    ]

    booking_prices = [listing.price for listing in booked_listings if listing.price is not None]
    min_candidates = booking_prices + [s.min_price for s in searches if s.min_price is not None]
    max_candidates = booking_prices + [s.max_price for s in searches if s.max_price is not None]

    bedrooms = _unique(
        [listing.bedrooms for listing in booked_listings if listing.bedrooms is not None]
        + [search.bedrooms for search in searches if search.bedrooms is not None]
    )

    return RecommendationPreferences(
        cities=_unique(booking_cities + strong_search_cities),
        min_price=min(min_candidates) * MIN_PRICE_FACTOR if min_candidates else None,
        max_price=max(max_candidates) * MAX_PRICE_FACTOR if max_candidates else None,
        bedrooms=bedrooms,
        booked_listing_ids=_unique(booking.listing_id for booking in bookings if booking.listing_id),
        has_booking_city=bool(booking_cities),
    )


async def recommend_listings(rentee_id: str, limit: int = DEFAULT_RECOMMENDATION_LIMIT) -> list[Listing]:
    """Listings similar to what the rentee booked or searched for."""
    masked_id = mask_user_id(rentee_id)

    try:
        bookings = await get_recent_bookings(rentee_id)
    except Exception as e:
        logger.error("Error fetching bookings for recommendations", rentee_id=masked_id, error=str(e))
        bookings = []

    try:
        searches = await get_search_history(rentee_id)
    except Exception as e:
        logger.warning("Search history not used for recommendations", rentee_id=masked_id, error=str(e))
        searches = []

    preferences = derive_preferences(bookings, searches)
    if preferences.is_empty:
        logger.info("No recommendation signal", rentee_id=masked_id)
        return []

    with log_timing("recommend_listings", logger=logger, rentee_id=masked_id):
        try:
            candidates = await find_recommendation_candidates(preferences)
        except Exception as e:
            logger.error("Error fetching recommended listings", rentee_id=masked_id, error=str(e))
            return []

        # Cities that only came from searches may be too narrow; retry without them.
        if not candidates and preferences.cities and not preferences.has_booking_city:
            try:
                candidates = await find_recommendation_candidates(preferences, include_cities=False)
            except Exception as e:
                logger.warning("Relaxed recommendation query failed", rentee_id=masked_id, error=str(e))

    booked = set(preferences.booked_listing_ids)
    recommendations = [listing for listing in candidates if listing.id not in booked][:limit]

    logger.info(
        "Recommendations computed",
        rentee_id=masked_id,
        cities=preferences.cities,
        bedrooms=preferences.bedrooms,
        candidates=len(candidates),
        returned=len(recommendations)
    )
    return recommendations
