from __future__ import annotations

from time import perf_counter
from typing import Callable


class FrameTimer:
    """Measures the wall-clock time between consecutive ticks and counts them."""

    def __init__(self, clock: Callable[[], float] = perf_counter) -> None:
        self._clock = clock
        self._previous = clock()
        self._frame_time = 0.0
        self._ticks = 0

    @property
    def frame_time(self) -> float:
        return self._frame_time

    @property
    def ticks(self) -> int:
        return self._ticks

    def tick(self) -> float:
        now = self._clock()
        self._frame_time = max(0.0, now - self._previous)
        self._previous = now
        self._ticks += 1
        return self._frame_time

    def reset(self) -> None:
        self._previous = self._clock()
        self._frame_time = 0.0
        self._ticks = 0
