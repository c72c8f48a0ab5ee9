"""Unit tests for FastAPI dependency injection functions."""

import time
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi import HTTPException

from storefront.api.deps import (
    get_active_principal,
    get_admin_principal,
    get_current_principal,
    get_current_user,
)
from storefront.api.middleware.auth import AuthError, AuthErrorCode
from storefront.api.middleware.error_handler import AuthenticationError, AuthorizationError
from storefront.schemas.auth import Principal, TokenPayload, UserContext

USER_ID = "550e8400-e29b-41d4-a716-446655440000"


class TestGetCurrentUser:
    """Tests for get_current_user dependency."""

    @pytest.mark.asyncio
    @patch("storefront.api.deps.decode_jwt")
    async def test_extracts_user_context_correctly(self, mock_decode: MagicMock) -> None:
        mock_decode.return_value = TokenPayload(
            sub=USER_ID,
            email="test@example.com",
            role="authenticated",
            exp=int(time.time()) + 3600,
            iat=int(time.time()),
        )

        user = await get_current_user("Bearer valid-token")

        assert isinstance(user, UserContext)
        assert str(user.user_id) == USER_ID
        assert user.email == "test@example.com"
        mock_decode.assert_called_once_with("valid-token")

    @pytest.mark.asyncio
    async def test_missing_header_raises_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_malformed_header_raises_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Token abc")

        assert exc_info.value.status_code == 401
        assert "Bearer" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("storefront.api.deps.decode_jwt")
    async def test_expired_token_raises_401(self, mock_decode: MagicMock) -> None:
        mock_decode.side_effect = AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Bearer expired")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"


class TestGetCurrentPrincipal:
    """Tests for resolving the token user into a principal."""

    @pytest.mark.asyncio
    async def test_builds_principal_from_profile(self) -> None:
        profile_id = uuid4()
        user = UserContext(user_id=UUID(USER_ID), email="chef@example.com")

        with patch("storefront.api.deps.ProfileService") as mock_service:
            mock_service.return_value.get_or_create_profile = AsyncMock(
                return_value={
                    "id": str(profile_id),
                    "display_name": "Chef",
                    "is_admin": True,
                    "is_banned": False,
                }
            )

            principal = await get_current_principal(user)

        assert principal.email == "chef@example.com"
        assert principal.profile_id == profile_id
        assert principal.is_admin is True
        assert principal.is_banned is False
        mock_service.return_value.get_or_create_profile.assert_awaited_once_with(
            UUID(USER_ID), email="chef@example.com"
        )

    @pytest.mark.asyncio
    async def test_token_without_email_is_rejected(self) -> None:
        user = UserContext(user_id=UUID(USER_ID), email=None)

        with pytest.raises(AuthenticationError):
            await get_current_principal(user)


def _principal(**flags: bool) -> Principal:
    return Principal(user_id=uuid4(), profile_id=uuid4(), email="u@example.com", **flags)


class TestPrincipalGuards:
    """Tests for the banned and admin guards."""

    @pytest.mark.asyncio
    async def test_banned_user_is_unauthenticated(self) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            await get_active_principal(_principal(is_banned=True))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_active_user_passes(self) -> None:
        principal = _principal()

        assert await get_active_principal(principal) is principal

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self) -> None:
        with pytest.raises(AuthorizationError) as exc_info:
            await get_admin_principal(_principal())

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_passes(self) -> None:
        principal = _principal(is_admin=True)

        assert await get_admin_principal(principal) is principal
