from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationHub:
    """Live websocket registry keyed by user id.

    `publish` targets one user's sockets, `broadcast` reaches every connected
    socket and carries the portal-wide refresh topics.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[user_id].add(websocket)

    async def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._connections.get(user_id)
            if not sockets:
                return
            sockets.discard(websocket)
            if not sockets:
                self._connections.pop(user_id, None)

    async def publish(self, user_id: str, payload: dict) -> None:
        async with self._lock:
            sockets = list(self._connections.get(user_id, set()))
        await self._send(sockets, payload)

    async def broadcast(self, payload: dict) -> None:
        async with self._lock:
            sockets = [socket for group in self._connections.values() for socket in group]
        await self._send(sockets, payload)

    def connection_count(self) -> int:
        return sum(len(group) for group in self._connections.values())

    async def _send(self, sockets: list[WebSocket], payload: dict) -> None:
        if not sockets:
            return

        stale: list[WebSocket] = []
        for websocket in sockets:
            try:
                await websocket.send_json(payload)
            except Exception:  # pragma: no cover - network/runtime dependent
                stale.append(websocket)

        if stale:
            async with self._lock:
                for user_id in list(self._connections):
                    active = self._connections[user_id]
                    active.difference_update(stale)
                    if not active:
                        self._connections.pop(user_id, None)
            logger.debug("Removed %d stale websocket(s)", len(stale))


notification_hub = NotificationHub()
