from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from player.classifier import AnswerClassifier, HttpAnswerClassifier
from player.config import PlayerSettings
from player.events import EventRecorder, HttpEventRecorder, NullEventRecorder, RedisStreamEventRecorder
from player.infra.clients import create_http_client, create_redis
from player.loader import ExplorationLoader, HttpExplorationLoader

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlayerServices:
    """External collaborators shared by every session in the process."""

    loader: ExplorationLoader
    classifier: AnswerClassifier
    events: EventRecorder
    http_client: httpx.AsyncClient | None = None


_SERVICES: PlayerServices | None = None


def build_services(settings: PlayerSettings) -> PlayerServices:
    client = create_http_client(settings)

    events: EventRecorder
    if settings.event_sink == "redis":
        events = RedisStreamEventRecorder(create_redis(settings))
    elif settings.event_sink == "none":
        events = NullEventRecorder()
    else:
        events = HttpEventRecorder(client)

    logger.info("Player services targeting %s (events: %s)", settings.server_url, settings.event_sink)
    return PlayerServices(
        loader=HttpExplorationLoader(client),
        classifier=HttpAnswerClassifier(client),
        events=events,
        http_client=client,
    )


def init_services(settings: PlayerSettings) -> PlayerServices:
    """Build the services once and cache them.

    Safe to call multiple times; subsequent calls return the cached instance.
    """

    global _SERVICES
    if _SERVICES is None:
        _SERVICES = build_services(settings)
    return _SERVICES


def get_services() -> PlayerServices:
    if _SERVICES is None:
        raise RuntimeError("Player services not initialized. Call init_services() at startup.")
    return _SERVICES


async def close_services() -> None:
    global _SERVICES
    services, _SERVICES = _SERVICES, None
    if services is None:
        return
    if isinstance(services.events, HttpEventRecorder):
        await services.events.drain()
    if services.http_client is not None:
        await services.http_client.aclose()


def reset_services_for_tests() -> None:
    """Forget the cached services without closing them."""

    global _SERVICES
    _SERVICES = None
