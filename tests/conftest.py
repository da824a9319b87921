"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("SEARCH_HISTORY_DEBOUNCE_MS", "800")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.listing import Listing
from src.models.message import Message, Profile
from tests.utils.factories import create_listing_data


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client whose query builders chain back to themselves."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "neq", "ilike", "gte", "lte", "contains", "in_", "or_",
                   "order", "limit", "insert", "update", "is_"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query
    client.query = query
    return client


@pytest.fixture
def patched_supabase(mock_supabase_client):
    """Route every SupabaseClient context to the mock client."""
    with patch("src.services.supabase_client.get_supabase_client", return_value=mock_supabase_client):
        yield mock_supabase_client


@pytest.fixture
def sample_listings():
    """A small Kathmandu valley inventory."""
    return [
        Listing(**create_listing_data(
            id="lst-1", title="Sunny 2 bed flat", city="Kathmandu", district="Kathmandu",
            address="Sainbu Bhainsepati", price=14000, bedrooms=2, bathrooms=1,
            amenities=["WiFi", "Parking"], description="Quiet lane near the ring road",
        )),
        Listing(**create_listing_data(
            id="lst-2", title="3BHK family house", city="Kathmandu", district="Kathmandu",
            address="Baneshwor", price=19500, bedrooms=3, bathrooms=2,
            amenities=["WiFi", "Furnished", "Kitchen"], description="Fully furnished with balcony",
        )),
        Listing(**create_listing_data(
            id="lst-3", title="Lakeside room", city="Pokhara", district="Kaski",
            address="Bagar", price=8000, bedrooms=1, bathrooms=1,
            amenities=["Balcony"], description="Lake view",
        )),
        Listing(**create_listing_data(
            id="lst-4", title="Student room", city="Lalitpur", district="Lalitpur",
            address="Pulchowk", price=6500, bedrooms=1, bathrooms=1,
            amenities=[], description="Close to engineering campus",
        )),
    ]


@pytest.fixture
def profiles():
    """Profiles of the chat participants used in messaging tests."""
    return {
        "landlord-1": Profile(id="landlord-1", first_name="Sita", last_name="Shrestha", email="sita@example.com"),
        "landlord-2": Profile(id="landlord-2", email="hari@example.com"),
        "rentee-1": Profile(id="rentee-1", first_name="Ram", last_name="Karki"),
    }


@pytest.fixture
def make_message():
    """Factory for Message models."""
    counter = {"n": 0}

    def _make(sender_id: str, receiver_id: str, content: str = "Hello", minute: int = 0, is_read: bool = False) -> Message:
        counter["n"] += 1
        return Message(
            id=f"msg-{counter['n']}",
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            is_read=is_read,
            created_at=datetime(2024, 12, 9, 12, minute, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
