"""
Unit Tests for Request Dependencies.

Tests session resolution from the Authorization header.
"""

import pytest

from notesapp.backend.core.dependencies import (
    get_current_user,
    get_request_id,
    get_session,
)
from notesapp.backend.core.exceptions import AuthenticationError
from notesapp.backend.core.security import SessionUser


class TestGetSession:
    """Tests for get_session."""

    @pytest.mark.asyncio
    async def test_no_header_returns_none(self):
        assert await get_session(authorization=None) is None

    @pytest.mark.asyncio
    async def test_bearer_token_resolves_user(self, hs256_identity, token_factory):
        session = await get_session(authorization=f"Bearer {token_factory(sub='u-9')}")

        assert session.sub == "u-9"
        assert session.email == "user1@example.com"

    @pytest.mark.asyncio
    async def test_non_bearer_scheme_rejected(self, hs256_identity, token_factory):
        with pytest.raises(AuthenticationError, match="Bearer"):
            await get_session(authorization=f"Basic {token_factory()}")

    @pytest.mark.asyncio
    async def test_empty_bearer_rejected(self):
        with pytest.raises(AuthenticationError):
            await get_session(authorization="Bearer   ")

    @pytest.mark.asyncio
    async def test_token_without_sub_rejected(self, hs256_identity, token_factory):
        with pytest.raises(AuthenticationError):
            await get_session(authorization=f"Bearer {token_factory(sub=None)}")


class TestGetCurrentUser:
    """Tests for get_current_user."""

    @pytest.mark.asyncio
    async def test_returns_session(self):
        session = SessionUser(sub="u1")
        assert await get_current_user(session=session) is session

    @pytest.mark.asyncio
    async def test_missing_session_raises(self):
        with pytest.raises(AuthenticationError, match="Log in"):
            await get_current_user(session=None)


class TestGetRequestId:
    """Tests for get_request_id."""

    @pytest.mark.asyncio
    async def test_uses_header(self):
        assert await get_request_id(x_request_id="req-1") == "req-1"

    @pytest.mark.asyncio
    async def test_generates_when_missing(self):
        first = await get_request_id(x_request_id=None)
        second = await get_request_id(x_request_id=None)
        assert first and second and first != second
