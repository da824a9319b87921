"""Supabase client wrapper with async context manager support."""

import os
from typing import Optional
from supabase import create_client, acreate_client, Client, AsyncClient
from supabase.client import ClientOptions
from src.models.booking import Booking
from src.models.listing import Listing
from src.models.message import Message, Profile
from src.models.recommendation import RecommendationPreferences
from src.models.search import ParsedFilters, SearchHistoryEntry
from src.utils.errors import SupabaseError
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None

RECOMMENDATION_CANDIDATE_LIMIT = 24


def _credentials() -> tuple[str, str]:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

    if not url or not key:
        raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
    return url, key


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url, key = _credentials()
        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


async def get_async_supabase_client() -> AsyncClient:
    """Create an async client; realtime channels are only available on it."""
    url, key = _credentials()
    return await acreate_client(url, key)


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def apply_listing_filters(query, filters: ParsedFilters):
    """Apply the structured part of ``filters`` to a listings query builder."""
    if filters.city:
        query = query.ilike("city", f"%{filters.city}%")
    if filters.min_price is not None:
        query = query.gte("price", filters.min_price)
    if filters.max_price is not None:
        query = query.lte("price", filters.max_price)
    if filters.bedrooms is not None:
        query = query.eq("bedrooms", filters.bedrooms)
    if filters.bathrooms is not None:
        query = query.eq("bathrooms", filters.bathrooms)
    if filters.amenities:
        query = query.contains("amenities", list(filters.amenities))
    return query


# Listings table operations
async def find_listings(filters: ParsedFilters, exclude_landlord_id: Optional[str] = None) -> list[Listing]:
    """Available listings matching the structured filters, best ranked first."""
    async with SupabaseClient() as client:
        try:
            query = client.table("listings").select("*").eq("availability_status", "available")
            if exclude_landlord_id:
                query = query.neq("landlord_id", exclude_landlord_id)
            query = apply_listing_filters(query, filters)
            result = query.order("rank_score", desc=True).execute()
            return [Listing(**row) for row in result.data or []]
        except Exception as e:
            raise SupabaseError(f"Failed to find listings: {e}")


async def find_recommendation_candidates(
    preferences: RecommendationPreferences,
    include_cities: bool = True,
) -> list[Listing]:
    """Available, active listings inside the preference envelope, newest first."""
    async with SupabaseClient() as client:
        try:
            query = (
                client.table("listings")
                .select("*")
                .eq("availability_status", "available")
                .eq("is_active", True)
            )
            if include_cities and preferences.cities:
                query = query.in_("city", preferences.cities)
            if preferences.min_price is not None:
                query = query.gte("price", preferences.min_price)
            if preferences.max_price is not None:
                query = query.lte("price", preferences.max_price)
            if preferences.bedrooms:
                query = query.in_("bedrooms", preferences.bedrooms)
            result = (
                query.order("created_at", desc=True)
                .limit(RECOMMENDATION_CANDIDATE_LIMIT)
                .execute()
            )
            return [Listing(**row) for row in result.data or []]
        except Exception as e:
            raise SupabaseError(f"Failed to find recommendation candidates: {e}")


# Bookings and search history
async def get_recent_bookings(rentee_id: str, limit: int = 20) -> list[Booking]:
    """Most recent bookings of a rentee with the booked listing embedded."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("bookings")
                .select("id, listing_id, rentee_id, status, created_at, listings (id, city, district, price, bedrooms, bathrooms)")
                .eq("rentee_id", rentee_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return [Booking(**row) for row in result.data or []]
        except Exception as e:
            raise SupabaseError(f"Failed to get bookings: {e}")


async def get_search_history(rentee_id: str, limit: int = 20) -> list[SearchHistoryEntry]:
    """Most recent saved searches of a rentee."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("search_history")
                .select("*")
                .eq("rentee_id", rentee_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            return [SearchHistoryEntry(**row) for row in result.data or []]
        except Exception as e:
            raise SupabaseError(f"Failed to get search history: {e}")


async def insert_search_history(entry: SearchHistoryEntry) -> None:
    """Persist one search."""
    async with SupabaseClient() as client:
        try:
            client.table("search_history").insert(
                entry.model_dump(exclude={"id", "created_at"})
            ).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to insert search history: {e}")


# Messages and profiles
async def get_messages_for_user(user_id: str) -> list[Message]:
    """Every message the user sent or received, newest first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("messages")
                .select("id, sender_id, receiver_id, content, message_type, is_read, created_at")
                .or_(f"sender_id.eq.{user_id},receiver_id.eq.{user_id}")
                .order("created_at", desc=True)
                .execute()
            )
            return [Message(**row) for row in result.data or []]
        except Exception as e:
            raise SupabaseError(f"Failed to get messages: {e}")


async def get_thread(user_id: str, other_user_id: str) -> list[Message]:
    """Messages exchanged between two users, oldest first."""
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("messages")
                .select("*")
                .or_(
                    f"and(sender_id.eq.{user_id},receiver_id.eq.{other_user_id}),"
                    f"and(sender_id.eq.{other_user_id},receiver_id.eq.{user_id})"
                )
                .order("created_at")
                .execute()
            )
            return [Message(**row) for row in result.data or []]
        except Exception as e:
            raise SupabaseError(f"Failed to get thread: {e}")


async def insert_message(sender_id: str, receiver_id: str, content: str, message_type: str = "text") -> Message:
    """Insert a chat message."""
    async with SupabaseClient() as client:
        try:
            result = client.table("messages").insert({
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "content": content,
                "message_type": message_type,
            }).execute()
            if result.data and len(result.data) > 0:
                return Message(**result.data[0])
            raise SupabaseError("Failed to insert message: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to insert message: {e}")


async def mark_messages_read(receiver_id: str, sender_id: str) -> None:
    """Mark everything ``sender_id`` sent to ``receiver_id`` as read."""
    async with SupabaseClient() as client:
        try:
            (
                client.table("messages")
                .update({"is_read": True})
                .eq("receiver_id", receiver_id)
                .eq("sender_id", sender_id)
                .eq("is_read", False)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to mark messages read: {e}")


async def mark_message_read(message_id: str) -> None:
    """Mark one message as read."""
    async with SupabaseClient() as client:
        try:
            client.table("messages").update({"is_read": True}).eq("id", message_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to mark message read: {e}")


async def get_profiles(profile_ids: list[str]) -> dict[str, Profile]:
    """Profiles keyed by ID; unknown IDs are simply absent."""
    if not profile_ids:
        return {}
    async with SupabaseClient() as client:
        try:
            result = (
                client.table("profiles")
                .select("id, first_name, last_name, avatar_url, email")
                .in_("id", profile_ids)
                .execute()
            )
            return {row["id"]: Profile(**row) for row in result.data or []}
        except Exception as e:
            raise SupabaseError(f"Failed to get profiles: {e}")
