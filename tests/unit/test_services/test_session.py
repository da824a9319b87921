"""Tests for bearer-token session lookup."""

import pytest
from unittest.mock import MagicMock
from src.services.session import extract_bearer_token, get_user_id
from src.utils.errors import SessionError


class FakeAuthError(Exception):
    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


@pytest.mark.unit
@pytest.mark.parametrize("header,expected", [
    ("Bearer abc.def", "abc.def"),
    ("bearer   abc.def  ", "abc.def"),
    ("Basic dXNlcjpwdw==", None),
    ("Bearer ", None),
    ("", None),
    (None, None),
])
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_token_is_anonymous(patched_supabase):
    assert await get_user_id(None) is None
    patched_supabase.auth.get_user.assert_not_called()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_valid_token_resolves_user(patched_supabase):
    patched_supabase.auth.get_user.return_value = MagicMock(user=MagicMock(id="rentee-1"))

    assert await get_user_id("token") == "rentee-1"
    patched_supabase.auth.get_user.assert_called_once_with("token")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rejected_token_is_anonymous(patched_supabase):
    patched_supabase.auth.get_user.side_effect = FakeAuthError("invalid JWT", status=401)

    assert await get_user_id("expired") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_auth_response_is_anonymous(patched_supabase):
    patched_supabase.auth.get_user.return_value = None

    assert await get_user_id("token") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_auth_outage_raises_session_error(patched_supabase):
    patched_supabase.auth.get_user.side_effect = ConnectionError("auth unreachable")

    with pytest.raises(SessionError, match="Failed to resolve session"):
        await get_user_id("token")
