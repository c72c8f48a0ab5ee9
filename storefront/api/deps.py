"""FastAPI dependency injection functions."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from storefront.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from storefront.api.middleware.error_handler import AuthenticationError, AuthorizationError
from storefront.schemas.auth import Principal, UserContext
from storefront.services.profile_service import ProfileService


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_jwt(parts[1])
        return payload.to_user_context()

    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


async def get_current_principal(user: CurrentUser) -> Principal:
    """Resolve the token user into a principal with profile flags.

    The email is the order ownership key, so tokens without one are
    rejected.

    Raises:
        AuthenticationError: Token carries no email.
    """
    if not user.email:
        raise AuthenticationError("Account has no email address")

    profile = await ProfileService().get_or_create_profile(user.user_id, email=user.email)
    return Principal(
        user_id=user.user_id,
        profile_id=UUID(str(profile["id"])),
        email=user.email,
        display_name=profile.get("display_name"),
        is_admin=bool(profile.get("is_admin")),
        is_banned=bool(profile.get("is_banned")),
    )


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_active_principal(principal: CurrentPrincipal) -> Principal:
    """Principal allowed to write: banned users count as unauthenticated.

    Raises:
        AuthenticationError: The user is banned.
    """
    if principal.is_banned:
        raise AuthenticationError("Your account has been suspended")
    return principal


ActivePrincipal = Annotated[Principal, Depends(get_active_principal)]


async def get_admin_principal(principal: ActivePrincipal) -> Principal:
    """Require an administrator.

    Raises:
        AuthorizationError: The caller is not an admin.
    """
    if not principal.is_admin:
        raise AuthorizationError("Admin access required")
    return principal


AdminPrincipal = Annotated[Principal, Depends(get_admin_principal)]
