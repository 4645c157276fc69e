"""
Tests for API dependencies.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from api.deps import (
    CurrentUser,
    get_client_ip,
    get_current_admin_user,
    get_current_user,
    get_current_user_optional,
)
from core.security import create_access_token


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.unit
class TestAuthentication:
    """Test token-based identity."""

    async def test_voter_token(self) -> None:
        user = await get_current_user(bearer(create_access_token({"sub": "u-1"})))
        assert user.id == "u-1"
        assert user.is_admin is False

    async def test_admin_token(self) -> None:
        user = await get_current_user(bearer(create_access_token({"sub": "a-1", "role": "admin"})))
        assert user.is_admin is True
        assert await get_current_admin_user(user) is user

    async def test_expired_token(self) -> None:
        token = create_access_token({"sub": "u-1"}, expires_delta=timedelta(seconds=-5))
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(bearer(token))
        assert exc_info.value.status_code == 401

    async def test_token_without_subject(self) -> None:
        with pytest.raises(HTTPException):
            await get_current_user(bearer(create_access_token({"role": "admin"})))

    async def test_optional_user(self) -> None:
        assert await get_current_user_optional(None) is None
        assert await get_current_user_optional(bearer("garbage")) is None

    async def test_admin_required(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_admin_user(CurrentUser(id="u-1"))
        assert exc_info.value.status_code == 403


@pytest.mark.unit
class TestClientIp:
    """Test audit IP extraction."""

    def test_first_forwarded_hop(self) -> None:
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}
        assert get_client_ip(request) == "203.0.113.5"

    def test_peer_address_fallback(self) -> None:
        request = MagicMock()
        request.headers = {}
        request.client.host = "192.0.2.10"
        assert get_client_ip(request) == "192.0.2.10"

    def test_no_client(self) -> None:
        request = MagicMock()
        request.headers = {}
        request.client = None
        assert get_client_ip(request) is None
