from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID, uuid4

from player.session import PlayerSession

logger = logging.getLogger(__name__)


DEFAULT_SESSION_IDLE_S = 3600.0


@dataclass(slots=True)
class _Entry:
    session: PlayerSession
    last_seen: float


class SessionRegistry:
    """In-process table of live player sessions keyed by a local handle.

    Sessions are not persisted. A session stays until the caller removes it or
    until it has gone `max_idle_s` seconds without being looked up; idle
    sessions are closed and evicted whenever a new session is added.
    `max_idle_s=None` keeps sessions for the life of the process.
    """

    def __init__(
        self,
        *,
        max_idle_s: float | None = DEFAULT_SESSION_IDLE_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_idle_s = max_idle_s
        self._clock = clock
        self._sessions: dict[UUID, _Entry] = {}
        self._lock = asyncio.Lock()

    async def add(self, session: PlayerSession) -> UUID:
        handle = uuid4()
        async with self._lock:
            evicted = self._pop_idle()
            self._sessions[handle] = _Entry(session=session, last_seen=self._clock())
        _close_evicted(evicted)
        return handle

    async def get(self, handle: UUID) -> PlayerSession | None:
        async with self._lock:
            entry = self._sessions.get(handle)
            if entry is None:
                return None
            entry.last_seen = self._clock()
            return entry.session

    async def remove(self, handle: UUID) -> PlayerSession | None:
        async with self._lock:
            entry = self._sessions.pop(handle, None)
        if entry is None:
            return None
        entry.session.close()
        return entry.session

    async def evict_idle(self) -> list[UUID]:
        async with self._lock:
            evicted = self._pop_idle()
        _close_evicted(evicted)
        return [handle for handle, _ in evicted]

    async def count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    def _pop_idle(self) -> list[tuple[UUID, PlayerSession]]:
        if self.max_idle_s is None:
            return []
        cutoff = self._clock() - self.max_idle_s
        idle = [handle for handle, entry in self._sessions.items() if entry.last_seen < cutoff]
        return [(handle, self._sessions.pop(handle).session) for handle in idle]


def _close_evicted(evicted: list[tuple[UUID, PlayerSession]]) -> None:
    for handle, session in evicted:
        session.close()
        logger.info("Evicted idle session %s (%s)", handle, session.exploration_id)


registry = SessionRegistry()
