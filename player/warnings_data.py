from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class WarningsData:
    """The single user-visible warning channel of a player session."""

    def __init__(self) -> None:
        self._messages: list[str] = []

    def add_warning(self, message: str) -> None:
        logger.warning("Player warning: %s", message)
        self._messages.append(message)

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
