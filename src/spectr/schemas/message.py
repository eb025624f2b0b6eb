"""Message-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

MessageKind = Literal["text", "image", "video", "file"]


class MessageCreate(BaseModel):
    """Schema for submitting a chat message over HTTP."""

    kind: MessageKind = "text"
    content: str | None = None
    attachment_url: str | None = Field(None, description="Reference returned by the upload endpoint")


class SenderProjection(BaseModel):
    """Sender as they appeared when the message was sent."""

    id: str
    display_name: str
    avatar_url: str | None = None


class MessageResponse(BaseModel):
    """Message as delivered in realtime events and history."""

    id: int
    chat_id: int
    sender_id: str
    kind: str
    content: str | None
    attachment_url: str | None
    created_at: datetime
    sender: SenderProjection
