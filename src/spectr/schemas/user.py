"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserPublic(BaseModel):
    """Profile fields visible to other users."""

    id: str
    display_name: str
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserPublic):
    """Full profile of the authenticated user."""

    email: str | None = None
    role: str
    created_at: datetime


class LoginResponse(BaseModel):
    """Response returned after a successful OAuth callback."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")
    created: bool = Field(..., description="True if the account was created by this sign-in")
    user: UserResponse


class ProfileUpdateRequest(BaseModel):
    """Schema for updating user profile information."""

    display_name: str | None = Field(None, max_length=100)
    avatar_url: str | None = Field(None, max_length=2048)

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Display name cannot be empty")
        return value
