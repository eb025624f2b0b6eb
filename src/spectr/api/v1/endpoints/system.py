"""System endpoints: public configuration and presence snapshot."""

from __future__ import annotations

from fastapi import APIRouter

from spectr.core.settings import settings
from spectr.models.message import MESSAGE_KINDS

from ..dependencies import CurrentUserDep, GatewayDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/config")
async def get_public_config() -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
        },
        "auth": {
            "providers": ["google"],
            "google_enabled": bool(settings.google_client_id and settings.google_client_secret),
            "access_token_expire_minutes": settings.access_token_expire_minutes,
        },
        "messages": {
            "kinds": list(MESSAGE_KINDS),
            "max_length": settings.max_message_length,
        },
        "uploads": {
            "max_bytes": settings.max_upload_bytes,
            "url_prefix": settings.upload_url_prefix,
        },
        "reports": {
            "email_notifications": settings.smtp_enabled,
        },
        "realtime": {
            "path": "/api/v1/ws",
            "presence_backend": settings.presence_backend,
        },
    }


@router.get("/presence")
async def get_presence(current_user: CurrentUserDep, gateway: GatewayDep) -> dict[str, list[str]]:
    """Return the ids of users with at least one identified session in this process."""
    return {"online": gateway.registry.online_users()}
