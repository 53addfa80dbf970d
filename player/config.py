from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal


EventSink = Literal["http", "redis", "none"]

_EVENT_SINKS: tuple[str, ...] = ("http", "redis", "none")


@dataclass(frozen=True, slots=True)
class PlayerSettings:
    # Exploration server hosting /explorehandler/...
    server_url: str
    http_timeout_s: float
    event_sink: EventSink
    log_level: str
    redis_url: str = "redis://localhost:6379/0"
    # Sessions untouched for this long are evicted; 0 disables eviction.
    session_idle_s: float = 3600.0


def settings_from_env() -> PlayerSettings:
    sink = os.environ.get("PLAYER_EVENT_SINK", "http").strip().lower()
    if sink not in _EVENT_SINKS:
        raise RuntimeError(f"PLAYER_EVENT_SINK must be one of {', '.join(_EVENT_SINKS)} (got {sink!r})")

    return PlayerSettings(
        server_url=os.environ.get("PLAYER_SERVER_URL", "http://localhost:8181"),
        http_timeout_s=float(os.environ.get("PLAYER_HTTP_TIMEOUT_S", "10.0")),
        event_sink=sink,  # type: ignore[arg-type]
        log_level=os.environ.get("PLAYER_LOG_LEVEL", "INFO").upper(),
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        session_idle_s=float(os.environ.get("PLAYER_SESSION_IDLE_S", "3600")),
    )
