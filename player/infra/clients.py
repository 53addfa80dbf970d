from __future__ import annotations

import httpx
import redis

from player.config import PlayerSettings


def create_http_client(settings: PlayerSettings) -> httpx.AsyncClient:
    """Client for the exploration server; every request path is relative to it."""

    return httpx.AsyncClient(base_url=settings.server_url, timeout=settings.http_timeout_s)


def create_redis(settings: PlayerSettings) -> redis.Redis:
    # Stream fields go in and come out as str.
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)
