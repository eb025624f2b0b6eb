"""WebSocket route for realtime messaging."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from spectr.core.errors import UnauthenticatedError
from spectr.core.security import decode_access_token
from spectr.core.settings import settings
from spectr.services.presence import WebSocketSession

from ..dependencies import GatewayDep, RepoDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])

# Application-defined close code for a missing or invalid access token.
WS_CLOSE_UNAUTHENTICATED = 4401


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    repo: RepoDep,
    gateway: GatewayDep,
    token: str | None = Query(None),
) -> None:
    """Authenticate from ``?token=`` and relay events until the client leaves."""
    try:
        principal_id = decode_access_token(token)
    except UnauthenticatedError as exc:
        logger.info("Rejected realtime connection: %s", exc.detail)
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED)
        return
    if repo.find_user_by_id(principal_id) is None:
        logger.info("Rejected realtime connection for unknown user %s", principal_id)
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED)
        return

    await websocket.accept()
    session = WebSocketSession(
        websocket,
        principal_id=principal_id,
        write_timeout=settings.session_write_timeout_seconds,
        queue_size=settings.session_queue_size,
    )
    session.start()
    logger.info("Realtime session %s opened for user %s", session.session_id, principal_id)

    try:
        while not session.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await gateway.handle_raw(session, repo, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await gateway.disconnect(session)
        await session.close()
        logger.info("Realtime session %s closed", session.session_id)
