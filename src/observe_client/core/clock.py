"""Time sources used to stamp records."""

from __future__ import annotations

import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Protocol for a provider of the current time."""

    def now_ms(self) -> int:
        """Return the current time as integer milliseconds since the epoch."""
        ...


class SystemClock:
    """Wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FixedClock:
    """Manually driven clock for deterministic timestamps."""

    def __init__(self, start_ms: int = 0):
        self._now_ms = start_ms
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            return self._now_ms

    def set(self, now_ms: int) -> None:
        with self._lock:
            self._now_ms = now_ms

    def advance(self, delta_ms: int) -> int:
        with self._lock:
            self._now_ms += delta_ms
            return self._now_ms
