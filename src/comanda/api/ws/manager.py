from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Connected screens (PDV, kitchen display, waiter app) keyed by socket."""

    def __init__(self) -> None:
        self._roles: dict[WebSocket, str] = {}
        self._lock = asyncio.Lock()

    async def register(self, websocket: WebSocket, role: str) -> None:
        await websocket.accept()
        async with self._lock:
            self._roles[websocket] = role
        logger.info("ws_client_connected", extra={"role": role})

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            role = self._roles.pop(websocket, None)
        if role is not None:
            logger.info("ws_client_disconnected", extra={"role": role})

    async def broadcast(self, message_json_str: str) -> None:
        async with self._lock:
            targets = list(self._roles)

        stale: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_text(message_json_str)
            except Exception:
                stale.append(websocket)

        for websocket in stale:
            await self.unregister(websocket)
