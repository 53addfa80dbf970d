from __future__ import annotations

import logging

import pytest

from player.stopwatch import Stopwatch


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_elapsed_before_reset_signals_unset(caplog: pytest.LogCaptureFixture) -> None:
    clock = FakeClock()
    sw = Stopwatch(clock=clock)
    clock.now += 30

    with caplog.at_level(logging.ERROR, logger="player.stopwatch"):
        assert sw.elapsed_seconds() is None

    assert sw.is_set is False
    assert "no start time was set" in caplog.text


def test_elapsed_counts_from_last_reset() -> None:
    clock = FakeClock()
    sw = Stopwatch(clock=clock)

    sw.reset()
    clock.now += 2.5
    assert sw.elapsed_seconds() == pytest.approx(2.5)

    sw.reset()
    clock.now += 1.0
    assert sw.elapsed_seconds() == pytest.approx(1.0)


def test_default_clock_is_monotonic_and_non_negative() -> None:
    sw = Stopwatch()
    sw.reset()
    elapsed = sw.elapsed_seconds()
    assert elapsed is not None
    assert elapsed >= 0.0
