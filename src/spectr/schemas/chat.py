"""Chat-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatCreate(BaseModel):
    """Schema for creating a group chat or channel."""

    name: str = Field(..., min_length=1, max_length=200)
    kind: Literal["group", "channel"] = "group"
    avatar_url: str | None = None
    member_ids: list[str] = Field(default_factory=list)


class PrivateChatCreate(BaseModel):
    """Open a one-to-one chat with another user."""

    user_id: str


class MemberInvite(BaseModel):
    """Add a user to an existing chat."""

    user_id: str
    role: Literal["admin", "member"] = "member"


class ChatResponse(BaseModel):
    """Chat as listed for the current user."""

    id: int
    kind: str
    name: str | None
    avatar_url: str | None
    created_by: str
    created_at: datetime
    role: str | None = None

    model_config = ConfigDict(from_attributes=True)


class MemberResponse(BaseModel):
    """Chat member with the role they hold."""

    user_id: str
    role: str
    display_name: str | None = None
    avatar_url: str | None = None


class ChatDetailResponse(ChatResponse):
    """Chat with its member list."""

    members: list[MemberResponse] = Field(default_factory=list)
