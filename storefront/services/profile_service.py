"""Profile business logic service."""

import logging
from typing import Any
from uuid import UUID

from storefront.api.middleware.error_handler import AuthorizationError, NotFoundError
from storefront.core.supabase import get_supabase_client
from storefront.models.profile import ProfileFlags
from storefront.schemas.auth import Principal

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for managing user profiles and their administrative flags."""

    def __init__(self) -> None:
        """Initialize profile service with Supabase client."""
        self.client = get_supabase_client()

    async def get_or_create_profile(
        self,
        user_id: UUID,
        email: str | None = None,
        display_name: str | None = None,
    ) -> dict[str, Any]:
        """Get existing profile or create a new one.

        New profiles start without admin or banned flags.

        Args:
            user_id: The auth user ID.
            email: User's email address.
            display_name: User's display name.

        Returns:
            dict: The profile data.
        """
        response = (
            self.client.table("profiles")
            .select("*")
            .eq("user_id", str(user_id))
            .execute()
        )

        if response.data:
            return response.data[0]

        profile_data = {
            "user_id": str(user_id),
            "email": email,
            "display_name": display_name or email,
            "is_admin": False,
            "is_banned": False,
        }

        response = (
            self.client.table("profiles")
            .insert(profile_data)
            .execute()
        )
        logger.info("Created profile for user %s", user_id)

        return response.data[0]

    async def list_profiles(self) -> list[dict[str, Any]]:
        """Get all profiles, newest first."""
        response = (
            self.client.table("profiles")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return response.data or []

    async def set_admin(self, profile_id: UUID, is_admin: bool, actor: Principal) -> dict[str, Any]:
        """Grant or revoke admin rights.

        Raises:
            AuthorizationError: The admin targets their own profile.
            NotFoundError: Profile does not exist.
        """
        if profile_id == actor.profile_id:
            raise AuthorizationError("You cannot change your own admin status")
        profile = await self._update_flags(profile_id, {"is_admin": is_admin})
        logger.info("Profile %s is_admin=%s set by %s", profile_id, is_admin, actor.email)
        return profile

    async def set_banned(self, profile_id: UUID, is_banned: bool, actor: Principal) -> dict[str, Any]:
        """Ban or unban a user.

        Raises:
            AuthorizationError: The admin tries to ban themselves.
            NotFoundError: Profile does not exist.
        """
        if profile_id == actor.profile_id and is_banned:
            raise AuthorizationError("You cannot ban yourself")
        profile = await self._update_flags(profile_id, {"is_banned": is_banned})
        logger.info("Profile %s is_banned=%s set by %s", profile_id, is_banned, actor.email)
        return profile

    async def _update_flags(self, profile_id: UUID, flags: ProfileFlags) -> dict[str, Any]:
        response = (
            self.client.table("profiles")
            .update(dict(flags))
            .eq("id", str(profile_id))
            .execute()
        )
        if not response.data:
            raise NotFoundError("User not found")
        return response.data[0]
