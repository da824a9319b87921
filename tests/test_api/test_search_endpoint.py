"""Tests for the listing search endpoint."""

import pytest
from unittest.mock import AsyncMock, patch
from urllib.parse import quote_plus
from api.search import MAX_QUERY_LENGTH, handler
from src.models.search import ParsedFilters, SearchResult
from src.utils.errors import SessionError, SupabaseError
from tests.utils.assertions import assert_valid_listing
from tests.utils.helpers import build_handler, response_json, response_status


def search_path(query: str) -> str:
    return f"/api/search?q={quote_plus(query)}"


@pytest.mark.unit
def test_search_returns_filters_and_listings(sample_listings):
    result = SearchResult(
        query="2 bed near sainbu under 15k",
        filters=ParsedFilters(city="sainbu", bedrooms=2, max_price=15000),
        listings=sample_listings[:1],
    )
    h = build_handler(handler, search_path("2 bed near sainbu under 15k"))

    with patch("api.search.get_user_id", new_callable=AsyncMock) as mock_user, \
         patch("api.search.search_listings", new_callable=AsyncMock) as mock_search:
        mock_user.return_value = None
        mock_search.return_value = result
        h.do_GET()

    mock_search.assert_awaited_once_with("2 bed near sainbu under 15k", user_id=None)
    assert response_status(h) == 200
    body = response_json(h)
    assert body["count"] == 1
    assert body["filters"]["city"] == "sainbu"
    assert body["filters"]["bedrooms"] == 2
    assert body["filters"]["amenities"] == []
    assert body["correlation_id"]
    assert_valid_listing(body["listings"][0])


@pytest.mark.unit
def test_search_passes_signed_in_user(sample_listings):
    h = build_handler(handler, search_path("flat"), headers={"Authorization": "Bearer token-1"})

    with patch("api.search.get_user_id", new_callable=AsyncMock) as mock_user, \
         patch("api.search.search_listings", new_callable=AsyncMock) as mock_search:
        mock_user.return_value = "rentee-1"
        mock_search.return_value = SearchResult(query="flat")
        h.do_GET()

    mock_user.assert_awaited_once_with("token-1")
    assert mock_search.call_args.kwargs["user_id"] == "rentee-1"
    assert response_json(h)["count"] == 0


@pytest.mark.unit
def test_overlong_query_is_rejected():
    h = build_handler(handler, search_path("x" * (MAX_QUERY_LENGTH + 1)))

    with patch("api.search.search_listings", new_callable=AsyncMock) as mock_search:
        h.do_GET()

    assert response_status(h) == 400
    mock_search.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.parametrize("error", [SupabaseError("Failed to find listings: timeout"), SessionError("down")])
def test_backend_errors_map_to_502(error):
    h = build_handler(handler, search_path("flat"))

    with patch("api.search.get_user_id", new_callable=AsyncMock) as mock_user, \
         patch("api.search.search_listings", new_callable=AsyncMock) as mock_search:
        mock_user.return_value = None
        mock_search.side_effect = error
        h.do_GET()

    assert response_status(h) == 502
    assert "error" in response_json(h)


@pytest.mark.unit
def test_unexpected_errors_map_to_500():
    h = build_handler(handler, search_path("flat"))

    with patch("api.search.get_user_id", new_callable=AsyncMock) as mock_user, \
         patch("api.search.search_listings", new_callable=AsyncMock) as mock_search:
        mock_user.return_value = None
        mock_search.side_effect = KeyError("listings")
        h.do_GET()

    assert response_status(h) == 500
    assert response_json(h) == {"error": "internal server error"}
