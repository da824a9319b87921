"""Recommendation preference model."""

from typing import Optional
from pydantic import BaseModel, Field


class RecommendationPreferences(BaseModel):
    """Relaxed listing predicate derived from a rentee's bookings and searches."""
    cities: list[str] = Field(default_factory=list, description="Preferred cities")
    min_price: Optional[float] = Field(None, description="Lower price preference")
    max_price: Optional[float] = Field(None, description="Upper price preference")
    bedrooms: list[int] = Field(default_factory=list, description="Acceptable bedroom counts")
    booked_listing_ids: list[str] = Field(default_factory=list, description="Listings to exclude")
    has_booking_city: bool = Field(default=False, description="True when a city came from a booking")

    @property
    def is_empty(self) -> bool:
        return (
            not self.cities
            and not self.min_price
            and not self.max_price
            and not self.bedrooms
        )
