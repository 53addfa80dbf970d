from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from player.errors import UnknownParameterError


class ParameterStore:
    """Named parameter values for a single player session.

    Every value is held as its string form regardless of the declared type;
    parameters are not typed yet and downstream rules compare strings.

    Each PlayerSession owns its own store; nothing here is shared across
    sessions.
    """

    def __init__(self, defaults: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, str] = {}
        if defaults:
            self.init(defaults)

    def init(self, defaults: Mapping[str, Any]) -> None:
        """Replace the whole parameter set."""

        self._values = {str(name): _as_param_string(value) for name, value in copy.deepcopy(dict(defaults)).items()}

    def get(self, name: str) -> str:
        if name not in self._values:
            raise UnknownParameterError(f"Invalid parameter name: {name}")
        return self._values[name]

    def set(self, name: str, value: Any) -> None:
        if name not in self._values:
            raise UnknownParameterError(f"Cannot set unknown parameter: {name}")
        self._values[name] = _as_param_string(value)

    def snapshot(self) -> dict[str, str]:
        return dict(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)


def _as_param_string(value: Any) -> str:
    return value if isinstance(value, str) else str(value)
