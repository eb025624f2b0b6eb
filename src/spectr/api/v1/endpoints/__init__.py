"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chats import router as chats_router
from .contacts import router as contacts_router
from .realtime import router as realtime_router
from .reports import router as reports_router
from .system import router as system_router
from .uploads import router as uploads_router
from .users import router as users_router

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
