from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from comanda.api.ws.manager import ConnectionManager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    role = websocket.query_params.get("role", "UNKNOWN").upper()
    manager: ConnectionManager = websocket.app.state.ws_manager
    await manager.register(websocket=websocket, role=role)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.unregister(websocket)
    except Exception:
        logger.exception("ws_connection_error", extra={"role": role})
        await manager.unregister(websocket)
