"""User administration schemas."""

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """Profile as shown to administrators."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    email: str | None = None
    display_name: str | None = None
    is_admin: bool = False
    is_banned: bool = False


class UserListResponse(BaseModel):
    items: list[UserResponse]


class ToggleAdminRequest(BaseModel):
    is_admin: bool = Field(description="New admin flag")


class ToggleBanRequest(BaseModel):
    is_banned: bool = Field(description="New banned flag")
