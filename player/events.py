"""Learner events reported to the exploration server.

Recording is fire-and-forget: recorders never report back to the session, and
a failed delivery is logged and dropped. Retrying is the sink's business.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal, Protocol

import httpx
import redis

logger = logging.getLogger(__name__)


EventType = Literal[
    "exploration_start",
    "state_hit",
    "answer_submitted",
    "maybe_leave",
]

# Endpoint names on the exploration server, under /explorehandler/.
HTTP_EVENT_HANDLERS: dict[str, str] = {
    "exploration_start": "exploration_start_event",
    "state_hit": "state_hit_event",
    "answer_submitted": "answer_submitted_event",
    "maybe_leave": "exploration_maybe_leave_event",
}


@dataclass(frozen=True, slots=True)
class ExplorationEvent:
    type: EventType
    exploration_id: str
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, exploration_id: str, payload: dict[str, Any]) -> "ExplorationEvent":
        return ExplorationEvent(type=type, exploration_id=exploration_id, payload=payload, ts=datetime.now(tz=UTC))

    @staticmethod
    def exploration_start(
        *, exploration_id: str, session_id: str | None, state_name: str, params: dict[str, str], version: int | None
    ) -> "ExplorationEvent":
        return ExplorationEvent.now(
            type="exploration_start",
            exploration_id=exploration_id,
            payload={"params": params, "session_id": session_id, "state_name": state_name, "version": version},
        )

    @staticmethod
    def state_hit(
        *,
        exploration_id: str,
        session_id: str | None,
        new_state_name: str,
        version: int | None,
        time_spent_secs: float | None,
        old_params: dict[str, str],
    ) -> "ExplorationEvent":
        return ExplorationEvent.now(
            type="state_hit",
            exploration_id=exploration_id,
            payload={
                "new_state_name": new_state_name,
                "exploration_version": version,
                "session_id": session_id,
                "client_time_spent_in_secs": time_spent_secs,
                "old_params": old_params,
            },
        )

    @staticmethod
    def answer_submitted(
        *,
        exploration_id: str,
        old_state_name: str,
        answer: Any,
        handler: str,
        params: dict[str, str],
        version: int | None,
        rule_spec: dict[str, Any],
    ) -> "ExplorationEvent":
        return ExplorationEvent.now(
            type="answer_submitted",
            exploration_id=exploration_id,
            payload={
                "answer": answer,
                "handler": handler,
                "params": params,
                "version": version,
                "old_state_name": old_state_name,
                "rule_spec": rule_spec,
            },
        )

    @staticmethod
    def maybe_leave(
        *,
        exploration_id: str,
        session_id: str | None,
        state_name: str | None,
        time_spent_secs: float | None,
        params: dict[str, str],
        version: int | None,
    ) -> "ExplorationEvent":
        return ExplorationEvent.now(
            type="maybe_leave",
            exploration_id=exploration_id,
            payload={
                "client_time_spent_in_secs": time_spent_secs,
                "params": params,
                "session_id": session_id,
                "state_name": state_name,
                "version": version,
            },
        )


class EventRecorder(Protocol):
    def record(self, event: ExplorationEvent) -> None:  # pragma: no cover
        ...


class NullEventRecorder:
    def record(self, event: ExplorationEvent) -> None:
        return None


class HttpEventRecorder:
    """POSTs each event to the exploration server without waiting for it."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client
        self._pending: set[asyncio.Task[None]] = set()

    def record(self, event: ExplorationEvent) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every delivery scheduled so far."""

        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def _deliver(self, event: ExplorationEvent) -> None:
        url = f"/explorehandler/{HTTP_EVENT_HANDLERS[event.type]}/{event.exploration_id}"
        try:
            resp = await self._client.post(url, json=event.payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Dropping %s event for exploration %s: %s", event.type, event.exploration_id, e)


def event_stream_key(exploration_id: str) -> str:
    return f"events:exploration:{exploration_id}"


class RedisStreamEventRecorder:
    """Appends each event to a per-exploration Redis Stream."""

    def __init__(self, r: redis.Redis) -> None:
        self._r = r

    def record(self, event: ExplorationEvent) -> None:
        fields = {
            "type": event.type,
            "exploration_id": event.exploration_id,
            "payload": json.dumps(event.payload, sort_keys=True, default=str),
            "ts": event.ts.isoformat(),
        }
        self._r.xadd(event_stream_key(event.exploration_id), fields)
