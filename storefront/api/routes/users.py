"""User administration routes (admin only)."""

from uuid import UUID

from fastapi import APIRouter

from storefront.api.deps import AdminPrincipal
from storefront.schemas.user import ToggleAdminRequest, ToggleBanRequest, UserListResponse, UserResponse
from storefront.services.profile_service import ProfileService

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
)
async def list_users(principal: AdminPrincipal) -> UserListResponse:
    profiles = await ProfileService().list_profiles()
    return UserListResponse(items=[UserResponse.model_validate(profile) for profile in profiles])


@router.patch(
    "/{profile_id}/admin",
    response_model=UserResponse,
    summary="Grant or revoke admin",
    description="An admin cannot change their own admin flag.",
)
async def toggle_admin(profile_id: UUID, data: ToggleAdminRequest, principal: AdminPrincipal) -> UserResponse:
    profile = await ProfileService().set_admin(profile_id, data.is_admin, principal)
    return UserResponse.model_validate(profile)


@router.patch(
    "/{profile_id}/ban",
    response_model=UserResponse,
    summary="Ban or unban a user",
    description="An admin cannot ban themselves.",
)
async def toggle_ban(profile_id: UUID, data: ToggleBanRequest, principal: AdminPrincipal) -> UserResponse:
    profile = await ProfileService().set_banned(profile_id, data.is_banned, principal)
    return UserResponse.model_validate(profile)
