"""Session lookup - resolve a bearer token to a Supabase auth user."""

from typing import Optional

from src.services.supabase_client import SupabaseClient
from src.utils.errors import SessionError
from src.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token part of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_user_id(access_token: Optional[str]) -> Optional[str]:
    """
    Resolve an access token to the user ID.
    
    Returns None for a missing or rejected token so callers can fall back to
    anonymous behaviour. Raises SessionError when the auth service is unreachable.
    """
    if not access_token:
        return None

    async with SupabaseClient() as client:
        try:
            response = client.auth.get_user(access_token)
        except Exception as e:
            # gotrue reports rejected tokens as AuthApiError with a 4xx status
            status = getattr(e, "status", None)
            if isinstance(status, int) and 400 <= status < 500:
                logger.warning("Access token rejected", status=status)
                return None
            raise SessionError(f"Failed to resolve session: {e}")

    user = getattr(response, "user", None) if response else None
    if user is None:
        return None

    logger.debug("Session resolved", user_id=mask_user_id(user.id))
    return user.id
