"""
WebSocket endpoint for the live hub view.

Accepts connections at /ws/hub?profile=<id>. Each connection gets its own
HubView subscribed to both collections; frames are pumped to the socket from
the view's queue while client commands are read and dispatched.
"""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.auth import SESSION_COOKIE, user_from_session
from backend.services.hub_view import HubView
from backend.services.profiles import admin_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


async def _pump(websocket: WebSocket, view: HubView) -> None:
    """Send queued frames until cancelled."""
    while True:
        frame = await view.frames.get()
        await websocket.send_text(json.dumps(frame))


@router.websocket("/ws/hub")
async def hub_websocket(websocket: WebSocket, profile: str | None = None) -> None:
    """
    Live hub connection.

    Protocol:
      Client sends commands: {"type": "search", "query": "..."}, {"type": "section.save", ...}
      Server sends frames: {"type": "sections", ...}, {"type": "notice", ...}, {"type": "table", ...}
    """
    await websocket.accept()

    user = user_from_session(websocket.cookies.get(SESSION_COOKIE))
    if user is None:
        logger.info("ws: rejected unauthenticated connection")
        await websocket.send_text(json.dumps({"type": "auth.required"}))
        await websocket.close(code=1008)
        return

    admin = admin_session(profile)
    admin.on_login()

    view = HubView(websocket.app.state.store, user, admin)
    view.start()
    pump = asyncio.create_task(_pump(websocket, view))
    logger.info("ws: connected user=%s profile=%s", user.id, profile)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("ws: invalid JSON from user=%s", user.id)
                continue
            if not isinstance(msg, dict):
                logger.warning("ws: non-object message from user=%s", user.id)
                continue
            await view.handle(msg)
    except WebSocketDisconnect:
        logger.info("ws: disconnected user=%s", user.id)
    finally:
        view.close()
        pump.cancel()
        try:
            await pump
        except (asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
            pass
