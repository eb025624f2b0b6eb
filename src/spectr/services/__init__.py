"""Business logic services for the Spectr messaging backend."""

from .delivery import LocalDelivery, RedisDelivery, build_event
from .fanout import MessageFanout
from .membership import Member, MembershipResolver
from .presence import ConnectionSession, PresenceRegistry, WebSocketSession
from .realtime import RealtimeGateway, get_realtime_gateway

__all__ = [
    "ConnectionSession",
    "LocalDelivery",
    "Member",
    "MembershipResolver",
    "MessageFanout",
    "PresenceRegistry",
    "RealtimeGateway",
    "RedisDelivery",
    "WebSocketSession",
    "build_event",
    "get_realtime_gateway",
]
