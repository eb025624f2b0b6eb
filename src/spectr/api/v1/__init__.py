"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    chats_router,
    contacts_router,
    realtime_router,
    reports_router,
    system_router,
    uploads_router,
    users_router,
)

__all__ = [
    "auth_router",
    "users_router",
    "contacts_router",
    "chats_router",
    "reports_router",
    "uploads_router",
    "system_router",
    "realtime_router",
]
