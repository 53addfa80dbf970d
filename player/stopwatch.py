from __future__ import annotations

import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Stopwatch:
    """Measures the time spent in the current state.

    `elapsed_seconds()` returns None when the stopwatch was never reset; it
    never makes up a duration.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._start: float | None = None

    def reset(self) -> None:
        self._start = self._clock()

    @property
    def is_set(self) -> bool:
        return self._start is not None

    def elapsed_seconds(self) -> float | None:
        if self._start is None:
            logger.error("Tried to retrieve the elapsed time, but no start time was set.")
            return None
        return self._clock() - self._start
