"""Profile model type definitions for database operations."""

from datetime import datetime
from typing import TypedDict
from uuid import UUID


class Profile(TypedDict):
    """Profile table row representation.

    Carries the admin and banned flags the identity layer exposes.
    """

    id: UUID
    user_id: UUID
    display_name: str | None
    email: str | None
    address: str | None
    is_admin: bool
    is_banned: bool
    created_at: datetime
    updated_at: datetime


class ProfileFlags(TypedDict, total=False):
    """Administrative flags that can be changed on a profile."""

    is_admin: bool
    is_banned: bool
