"""End-to-end tests: typed query through the store adapter to the refined result."""

import pytest
from unittest.mock import AsyncMock, patch
from src.services.listing_search import search_listings
from src.services.search_history import SearchHistoryRecorder
from src.services.search_session import SearchSession
from tests.utils.factories import create_listing_data


@pytest.fixture
def store_rows(sample_listings):
    """Rows as the listings table returns them."""
    return [listing.model_dump() for listing in sample_listings]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_search_request_builds_store_query(patched_supabase, store_rows):
    """Test that parsed filters reach the store query and the residual text refines rows."""
    query = patched_supabase.query
    query.execute.return_value.data = store_rows[:2]

    result = await search_listings("looking for 3bhk in kathmandu under 20000 furnished", user_id="rentee-1")

    query.ilike.assert_called_once_with("city", "%kathmandu%")
    query.lte.assert_called_once_with("price", 20000)
    query.eq.assert_any_call("bedrooms", 3)
    query.contains.assert_called_once_with("amenities", ["Furnished"])
    query.neq.assert_called_once_with("landlord_id", "rentee-1")
    # the store mock ignores predicates; local refinement still applies them
    assert [listing.id for listing in result.listings] == ["lst-2"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_search_session_round_trip(patched_supabase, store_rows):
    """Test typing, submitting and history persistence against the mocked store."""
    query = patched_supabase.query
    query.execute.return_value.data = store_rows
    recorder = SearchHistoryRecorder(window_ms=10)
    session = SearchSession(user_id="rentee-1", recorder=recorder)

    await session.refresh()
    assert len(session.listings) == 4

    with patch("src.services.search_history.insert_search_history", new_callable=AsyncMock) as mock_insert:
        filtered = await session.type_query("room in pokhara")
        await recorder.flush()

    assert [listing.id for listing in filtered] == ["lst-3"]
    assert mock_insert.call_args[0][0].city == "pokhara"

    query.execute.return_value.data = [create_listing_data(id="lst-8", city="Pokhara", price=9000)]
    await session.submit()

    assert session.filters.city == "pokhara"
    assert session.search_query == ""
    assert [listing.id for listing in session.filtered_listings] == ["lst-8"]
