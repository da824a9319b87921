"""Search models: parsed query filters, search history rows and search results."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from src.models.listing import Listing


class ParsedFilters(BaseModel):
    """Structured filters extracted from one free-text search phrase.

    Every field is independently optional. A value with no structured field set
    means "apply no additional filter", never "match nothing".
    """
    model_config = ConfigDict(frozen=True)

    city: Optional[str] = Field(None, description="Locality token, lowercase")
    min_price: Optional[float] = Field(None, ge=0, description="Inclusive lower rent bound")
    max_price: Optional[float] = Field(None, ge=0, description="Inclusive upper rent bound")
    bedrooms: Optional[int] = Field(None, ge=0, description="Exact bedroom count")
    bathrooms: Optional[int] = Field(None, ge=0, description="Exact bathroom count")
    amenities: tuple[str, ...] = Field(default=(), description="Canonical amenity tags, deduplicated")
    remaining_query: Optional[str] = Field(None, description="Residual free text for substring matching")

    @property
    def has_structured_filters(self) -> bool:
        return any(
            value is not None
            for value in (self.city, self.min_price, self.max_price, self.bedrooms, self.bathrooms)
        ) or bool(self.amenities)

    def merged_with(self, other: "ParsedFilters") -> "ParsedFilters":
        """Overlay the structured fields that ``other`` sets onto this value.

        Fields ``other`` leaves unset keep their current value. The residual text
        is not carried over.
        """
        updates = {}
        for name in ("city", "min_price", "max_price", "bedrooms", "bathrooms"):
            value = getattr(other, name)
            if value is not None:
                updates[name] = value
        if other.amenities:
            updates["amenities"] = other.amenities
        updates["remaining_query"] = None
        return self.model_copy(update=updates)


class SearchHistoryEntry(BaseModel):
    """Row of the search_history table."""
    id: Optional[str] = None
    rentee_id: str = Field(..., description="Profile ID of the searching rentee")
    raw_query: Optional[str] = Field(None, description="Query as typed")
    city: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    created_at: Optional[str] = None

    @classmethod
    def from_filters(cls, rentee_id: str, raw_query: str, filters: ParsedFilters) -> "SearchHistoryEntry":
        return cls(
            rentee_id=rentee_id,
            raw_query=raw_query,
            city=filters.city,
            min_price=filters.min_price,
            max_price=filters.max_price,
            bedrooms=filters.bedrooms,
            bathrooms=filters.bathrooms,
        )


class SearchResult(BaseModel):
    """Outcome of one search request."""
    query: str = Field(default="", description="Raw query text")
    filters: ParsedFilters = Field(default_factory=ParsedFilters)
    listings: list[Listing] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.listings)
