"""Test data factories using Faker."""

from faker import Faker
from typing import Optional
from datetime import datetime, timezone

fake = Faker()

CITIES = ["Kathmandu", "Lalitpur", "Bhaktapur", "Pokhara", "Biratnagar"]
AMENITIES = ["WiFi", "Parking", "Furnished", "Balcony", "Kitchen", "TV"]


def create_listing_data(**overrides) -> dict:
    """Create a listings table row."""
    data = {
        "id": fake.uuid4(),
        "landlord_id": fake.uuid4(),
        "title": fake.sentence(nb_words=4),
        "description": fake.text(max_nb_chars=120),
        "address": fake.street_address(),
        "city": fake.random_element(CITIES),
        "district": fake.random_element(CITIES),
        "price": fake.random_int(min=5000, max=40000),
        "bedrooms": fake.random_int(min=1, max=4),
        "bathrooms": fake.random_int(min=1, max=3),
        "amenities": fake.random_elements(AMENITIES, unique=True, length=2),
        "availability_status": "available",
        "is_active": True,
        "rank_score": fake.pyfloat(min_value=0, max_value=5),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    data.update(overrides)
    return data


def create_booking_data(
    rentee_id: str,
    city: Optional[str] = None,
    price: Optional[float] = None,
    bedrooms: Optional[int] = None,
    listing_id: Optional[str] = None,
) -> dict:
    """Create a bookings row with its listing embedded."""
    listing_id = listing_id or fake.uuid4()
    return {
        "id": fake.uuid4(),
        "listing_id": listing_id,
        "rentee_id": rentee_id,
        "status": "confirmed",
        "created_at": datetime.now(timezone.utc).isoformat(),
        "listings": {
            "id": listing_id,
            "city": city,
            "district": city,
            "price": price,
            "bedrooms": bedrooms,
            "bathrooms": 1,
        },
    }


def create_search_history_data(rentee_id: str, **overrides) -> dict:
    """Create a search_history row."""
    data = {
        "id": fake.uuid4(),
        "rentee_id": rentee_id,
        "raw_query": fake.sentence(nb_words=3),
        "city": None,
        "min_price": None,
        "max_price": None,
        "bedrooms": None,
        "bathrooms": None,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    data.update(overrides)
    return data


def create_message_data(sender_id: str, receiver_id: str, **overrides) -> dict:
    """Create a messages row."""
    data = {
        "id": fake.uuid4(),
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "content": fake.sentence(),
        "message_type": "text",
        "is_read": False,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    data.update(overrides)
    return data
