"""WebSocket event envelopes and inbound payloads."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .message import MessageKind


class WsInbound(BaseModel):
    """Client -> server."""

    type: str  # identify | join_chat | leave_chat | send_message | typing | ping
    data: dict[str, Any] = Field(default_factory=dict)


class WsOutbound(BaseModel):
    """Server -> client."""

    type: str  # identified | new_message | message_ack | user_online | user_offline | ...
    data: dict[str, Any] = Field(default_factory=dict)


class IdentifyPayload(BaseModel):
    """Optional identity claim; must match the connection's token."""

    user_id: str | None = None


class ChatRefPayload(BaseModel):
    """Payload of events that only reference a chat."""

    chat_id: int


class SendMessagePayload(BaseModel):
    """Payload of ``send_message``."""

    chat_id: int
    kind: MessageKind = "text"
    content: str | None = None
    attachment_ref: str | None = None
    client_ref: str | None = Field(None, max_length=64, description="Echoed back in message_ack")
