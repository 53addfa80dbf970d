from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class SessionWebSocketHub:
    """Pushes session updates to every page watching a session handle.

    Messages are small JSON dicts: `state_transition` after each committed
    answer and `session_closed` when the session is deleted.
    """

    def __init__(self) -> None:
        self._watchers: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, handle: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._watchers[handle].add(websocket)

    async def disconnect(self, handle: str, websocket: WebSocket) -> None:
        async with self._lock:
            watchers = self._watchers.get(handle)
            if watchers is None:
                return
            watchers.discard(websocket)
            if not watchers:
                del self._watchers[handle]

    async def watcher_count(self, handle: str) -> int:
        async with self._lock:
            return len(self._watchers.get(handle, ()))

    async def broadcast(self, handle: str, message: dict[str, object]) -> None:
        async with self._lock:
            watchers = list(self._watchers.get(handle, ()))

        failed = [ws for ws in watchers if not await _send(ws, message)]
        for ws in failed:
            await self.disconnect(handle, ws)

    async def close_session(self, handle: str) -> None:
        """Tell every watcher the session is gone, then drop them."""

        async with self._lock:
            watchers = self._watchers.pop(handle, set())

        for ws in watchers:
            if await _send(ws, {"type": "session_closed", "handle": handle}):
                try:
                    await ws.close()
                except RuntimeError:
                    # Already closed by the client.
                    pass


async def _send(ws: WebSocket, message: dict[str, object]) -> bool:
    try:
        await ws.send_json(message)
    except Exception as e:
        logger.debug("Dropping websocket watcher: %s", e)
        return False
    return True


hub = SessionWebSocketHub()
