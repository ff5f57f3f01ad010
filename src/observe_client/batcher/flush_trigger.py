"""Flush decisions for the Observe client.

While nothing is being sent the engine is idle and every record is sent
straight away. Once a transmission is in flight, records accumulate until the
batch size or byte limit is reached, or until the deferred flush timer fires.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, Optional, Protocol

from loguru import logger


class EngineState(str, Enum):
    """Whether a transmission is in flight."""

    IDLE = "idle"
    SENDING = "sending"


class FlushDecision(str, Enum):
    """What to do after a record has been queued."""

    IMMEDIATE = "immediate"
    DEFERRED = "deferred"


class Timer(Protocol):
    """The subset of ``threading.Timer`` the trigger relies on."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _daemon_timer(interval: float, function: Callable[[], None]) -> Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class FlushTrigger:
    """Decides between immediate and deferred flushes and owns the flush timer.

    At most one deferred flush is armed at a time. A pending timer already
    fires within ``batch_time`` of the oldest record it covers, so later
    records do not need their own.
    """

    def __init__(
        self,
        batch_size: int,
        size_limit_bytes: int,
        batch_time_seconds: float,
        on_timer: Callable[[], None],
        timer_factory: Optional[TimerFactory] = None,
    ):
        """Initialize the trigger.

        Args:
            batch_size: Queued record count that forces a flush while sending
            size_limit_bytes: Queued byte size above which a flush is forced while sending
            batch_time_seconds: Delay of the deferred flush
            on_timer: Called from the timer thread when a deferred flush fires
            timer_factory: Builds timers, ``threading.Timer`` by default
        """
        self.batch_size = batch_size
        self.size_limit_bytes = size_limit_bytes
        self.batch_time_seconds = batch_time_seconds
        self._on_timer = on_timer
        self._timer_factory = timer_factory or _daemon_timer
        self._timer: Optional[Timer] = None
        self._lock = threading.Lock()

        # Statistics
        self._timers_armed = 0
        self._timers_fired = 0

    def evaluate(self, state: EngineState, queued_count: int, queued_bytes: int) -> FlushDecision:
        """Decide whether the buffer should be flushed now."""
        if state is EngineState.IDLE:
            # low-latency mode
            return FlushDecision.IMMEDIATE
        if queued_count >= self.batch_size:
            return FlushDecision.IMMEDIATE
        if queued_bytes > self.size_limit_bytes:
            return FlushDecision.IMMEDIATE
        return FlushDecision.DEFERRED

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self) -> bool:
        """Schedule a deferred flush unless one is already pending.

        Returns:
            True if a new timer was started
        """
        with self._lock:
            if self._timer is not None:
                return False

            timer: Optional[Timer] = None

            def fire() -> None:
                with self._lock:
                    if self._timer is timer:
                        self._timer = None
                    self._timers_fired += 1
                self._on_timer()

            timer = self._timer_factory(self.batch_time_seconds, fire)
            self._timer = timer
            self._timers_armed += 1

        timer.start()
        logger.debug(f"Armed deferred flush in {self.batch_time_seconds:.3f}s")
        return True

    def disarm(self) -> None:
        """Cancel the pending deferred flush, if any."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "timer_armed": self._timer is not None,
                "timers_armed": self._timers_armed,
                "timers_fired": self._timers_fired,
                "batch_size": self.batch_size,
                "size_limit_bytes": self.size_limit_bytes,
                "batch_time_seconds": self.batch_time_seconds,
            }
