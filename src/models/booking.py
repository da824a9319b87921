"""Booking model."""

from typing import Optional
from pydantic import BaseModel, Field


class BookedListing(BaseModel):
    """Subset of listing columns embedded in a booking query."""
    id: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None


class Booking(BaseModel):
    """Row of the bookings table, optionally with its listing embedded."""
    id: str = Field(..., description="Booking ID")
    listing_id: Optional[str] = Field(None, description="Booked listing ID")
    rentee_id: Optional[str] = Field(None, description="Rentee profile ID")
    status: Optional[str] = Field(None, description="Booking / payment status")
    created_at: Optional[str] = None
    listings: Optional[BookedListing] = Field(None, description="Embedded listing row")
