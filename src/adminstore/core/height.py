from __future__ import annotations

"""Height sources.

Height is the store's logical clock: every call reads it, it never decreases,
and consecutive calls may observe the same value.
"""

import threading
import time
from typing import Callable, Optional, Protocol


class HeightSource(Protocol):
    def current(self) -> int: ...


class ManualHeight:
    """Height advanced explicitly by the embedding environment (and tests)."""

    def __init__(self, start: int = 0) -> None:
        if int(start) < 0:
            raise ValueError("height must be >= 0")
        self._h = int(start)
        self._lock = threading.Lock()

    def current(self) -> int:
        with self._lock:
            return self._h

    def advance(self, n: int = 1) -> int:
        if int(n) < 0:
            raise ValueError("height cannot decrease")
        with self._lock:
            self._h += int(n)
            return self._h

    def set(self, h: int) -> int:
        with self._lock:
            if int(h) < self._h:
                raise ValueError(f"height cannot decrease: have={self._h} got={h}")
            self._h = int(h)
            return self._h


class IntervalHeight:
    """Wall-clock height: whole intervals elapsed since genesis_ms.

    Clamped so a clock step backwards never lowers the reported height.
    """

    def __init__(
        self,
        *,
        genesis_ms: int,
        interval_ms: int,
        clock: Optional[Callable[[], float]] = None,
        floor: int = 0,
    ) -> None:
        if int(interval_ms) <= 0:
            raise ValueError("interval_ms must be > 0")
        self.genesis_ms = int(genesis_ms)
        self.interval_ms = int(interval_ms)
        self._clock = clock or time.time
        self._last = max(0, int(floor))
        self._lock = threading.Lock()

    def current(self) -> int:
        now_ms = int(self._clock() * 1000)
        h = max(0, (now_ms - self.genesis_ms) // self.interval_ms)
        with self._lock:
            if h > self._last:
                self._last = h
            return self._last
