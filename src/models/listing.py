"""Listing models."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class Listing(BaseModel):
    """Rental listing as stored in the listings table."""
    id: str = Field(..., description="Listing ID (uuid)")
    landlord_id: Optional[str] = Field(None, description="Owning landlord profile ID")
    title: str = Field(default="", description="Listing title")
    description: Optional[str] = Field(None, description="Free-text description")
    address: Optional[str] = Field(None, description="Street address")
    city: Optional[str] = Field(None, description="City / locality")
    district: Optional[str] = Field(None, description="District")
    price: float = Field(..., ge=0, description="Monthly rent")
    bedrooms: Optional[int] = Field(None, ge=0, description="Bedroom count")
    bathrooms: Optional[int] = Field(None, ge=0, description="Bathroom count")
    area_sqft: Optional[int] = Field(None, ge=0, description="Floor area in square feet")
    amenities: list[str] = Field(default_factory=list, description="Amenity tags, e.g. WiFi, Parking")
    photos: list[str] = Field(default_factory=list, description="Photo URLs")
    availability_status: str = Field(default="available", description="available, rented, unavailable")
    is_active: bool = Field(default=True, description="Soft visibility flag")
    rank_score: Optional[float] = Field(None, description="Ranking score, higher first")
    rating: Optional[float] = Field(None, description="Average review rating")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("amenities", "photos", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return [] if value is None else value

    def searchable_text(self) -> str:
        """Lowercased text used for residual free-text matching."""
        parts = [self.title, self.description, self.address, self.city, self.district]
        return " ".join(part or "" for part in parts).lower()
