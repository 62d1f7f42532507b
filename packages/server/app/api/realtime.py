"""
Realtime WebSocket endpoint.

- WS /ws?token=<access token> (or an ``Authorization: Bearer`` header)
- The socket joins ``user:{id}`` and, if the credential names one, ``org:{id}``
- ``ping`` text frames are answered with a ``PONG`` event; everything else
  from the client is ignored
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.core.auth import Principal, authenticate, extract_bearer_token
from app.core.errors import AppError
from app.core.realtime import encode_frame
from prody_shared.schemas.common import RealtimeEvent

router = APIRouter()
log = structlog.get_logger()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    try:
        if not token:
            token = extract_bearer_token(websocket.headers.get("authorization"))
        principal = Principal.from_claims(authenticate(websocket.app.state.tokens, token))
    except AppError as exc:
        log.info("realtime.auth_failed", reason=exc.detail)
        await websocket.close(code=4001, reason="authentication_failed")
        return

    broadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    info = await broadcaster.connect(websocket, principal.user_id, principal.org_id)

    try:
        while True:
            data = await websocket.receive_text()
            if data.strip().lower() == "ping":
                info.enqueue(encode_frame(RealtimeEvent.PONG, {}))
    except WebSocketDisconnect:
        pass
    finally:
        await broadcaster.disconnect(info)
