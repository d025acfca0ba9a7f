"""
Realtime WebSocket endpoint.

Clients connect to ``/api/v1/ws?token=<bearer>``. Signed-in customers get
events about their own quotes and orders, staff and admins get every
event. Connections without a valid token are kept open but only answer
pings.
"""
import json
import logging
import uuid
from typing import Optional, Tuple

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from storefront.core.database import get_db_session
from storefront.core.events import event_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def resolve_connection(token: Optional[str]) -> Tuple[str, Optional[str]]:
    """Map a bearer token to (user key, role); anonymous sockets get a guest key."""
    if token:
        from storefront.services.auth_service import auth_service

        with get_db_session() as db:
            user = auth_service.resolve_token(db, token)
            if user is not None:
                return user.id, user.role.value
    return f"guest-{uuid.uuid4()}", None


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    user_key, role = resolve_connection(token)
    await websocket.accept()
    await event_hub.connect(websocket, user_key, role)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                logger.debug(f"Ignoring non-JSON frame from {user_key[:8]}...")
                continue
            if isinstance(frame, dict) and frame.get("type") == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    except WebSocketDisconnect:
        pass
    finally:
        await event_hub.disconnect(websocket, user_key)
