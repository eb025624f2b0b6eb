"""Contact-related Pydantic schemas."""

from pydantic import BaseModel, Field

from .user import UserPublic


class ContactCreate(BaseModel):
    """Request to add a contact by email address."""

    email: str = Field(..., min_length=3, max_length=320)
    nickname: str | None = Field(None, max_length=100)


class ContactResponse(BaseModel):
    """Accepted contact as seen by the current user."""

    id: int
    nickname: str | None
    user: UserPublic


class ContactRequestResponse(BaseModel):
    """Contact request state."""

    id: int
    status: str
    requester: UserPublic
    target: UserPublic
