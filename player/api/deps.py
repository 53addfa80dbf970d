from __future__ import annotations

from player.registry import SessionRegistry, registry
from player.services import PlayerServices, get_services


def get_player_services() -> PlayerServices:
    return get_services()


def get_registry() -> SessionRegistry:
    return registry
