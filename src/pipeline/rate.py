"""
Thread-safe frames-per-second meter.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Optional


class RateMeter:
    """Averages the interval between the last buffer_len ticks."""

    def __init__(self, buffer_len: int = 10):
        self._intervals: deque = deque(maxlen=max(1, buffer_len))
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def tick(self, now: Optional[float] = None) -> None:
        now = time.perf_counter() if now is None else now
        with self._lock:
            if self._last is not None:
                self._intervals.append(max(1e-6, now - self._last))
            self._last = now

    @property
    def fps(self) -> float:
        with self._lock:
            if not self._intervals:
                return 0.0
            return round(len(self._intervals) / sum(self._intervals), 2)
