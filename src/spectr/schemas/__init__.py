"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .chat import ChatCreate, ChatDetailResponse, ChatResponse, MemberInvite, MemberResponse, PrivateChatCreate
from .contact import ContactCreate, ContactRequestResponse, ContactResponse
from .message import MessageCreate, MessageResponse, SenderProjection
from .realtime import WsInbound, WsOutbound
from .report import ReportCreate, ReportResponse, ReportStatusUpdate
from .user import LoginResponse, ProfileUpdateRequest, UserPublic, UserResponse

__all__ = [
    "ChatCreate", "ChatDetailResponse", "ChatResponse", "MemberInvite", "MemberResponse",
    "PrivateChatCreate",
    "ContactCreate", "ContactRequestResponse", "ContactResponse",
    "MessageCreate", "MessageResponse", "SenderProjection",
    "WsInbound", "WsOutbound",
    "ReportCreate", "ReportResponse", "ReportStatusUpdate",
    "LoginResponse", "ProfileUpdateRequest", "UserPublic", "UserResponse",
]
