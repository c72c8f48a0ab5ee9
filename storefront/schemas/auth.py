"""Authentication schemas for JWT tokens and the request principal."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated user context extracted from JWT token.

    It is populated by the auth middleware from the validated JWT.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="Token role claim")


class TokenPayload(BaseModel):
    """JWT token payload structure for Supabase tokens."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    aud: str | None = Field(default=None, description="Audience - intended recipient")
    iss: str | None = Field(default=None, description="Issuer - token issuer URL")

    @property
    def expiration_datetime(self) -> datetime:
        """Get expiration as datetime object."""
        return datetime.fromtimestamp(self.exp)

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
        )


class Principal(BaseModel):
    """The acting user for a request: token identity plus profile flags."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: UUID = Field(description="Auth user ID")
    profile_id: UUID = Field(description="Profile row ID")
    email: str = Field(description="Email address, the order ownership key")
    display_name: str | None = Field(default=None, description="Display name")
    is_admin: bool = Field(default=False, description="Administrator flag")
    is_banned: bool = Field(default=False, description="Banned flag")

    def can_access(self, owner_email: str) -> bool:
        """Admins see everything; everyone else only what their email owns."""
        return self.is_admin or self.email == owner_email
