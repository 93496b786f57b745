from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from teamhub.application import ServiceContainer
from teamhub.core.logging import get_logger
from teamhub.infrastructure.channel import ERROR
from teamhub.routes.deps import get_container, get_current_user

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    """Live event stream; frames are ``{"event": ..., "data": ...}`` JSON objects."""
    channel = websocket.app.state.container.channel
    await websocket.accept()
    connection_id = channel.connect(websocket)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text")
            if raw is None:
                logger.debug("Rejected binary frame on %s", connection_id)
                await websocket.send_json({"event": ERROR, "data": {"message": "frames must be JSON text"}})
                continue
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug("Rejected non-JSON frame on %s", connection_id)
                await websocket.send_json({"event": ERROR, "data": {"message": "invalid JSON frame"}})
                continue
            await channel.handle_message(connection_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        channel.disconnect(connection_id)


@router.get("/realtime/connections")
async def list_connections(
    _: dict[str, Any] = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return {"items": container.channel.connected_users()}
