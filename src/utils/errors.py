"""Error handling utilities."""


class RoomRentError(Exception):
    """Base exception for the room rental backend."""
    pass


class SupabaseError(RoomRentError):
    """Supabase operation error."""
    pass


class SessionError(RoomRentError):
    """Session lookup failed."""
    pass


class MessagingError(RoomRentError):
    """Invalid chat message or thread operation."""
    pass


class SearchError(RoomRentError):
    """Listing search failed."""
    pass
