"""Shared fixtures for the Observe client tests."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Mapping, Optional

import pytest
from loguru import logger

from observe_client.sender import Transport, TransportResponse


class FakeTransport(Transport):
    """Records every request and answers with a fixed status.

    With ``block=True`` requests wait until ``release()`` is called, which keeps
    the observer in its sending state for as long as a test needs.
    """

    def __init__(self, status: int = 200, reason: str = "OK", block: bool = False, error: Optional[Exception] = None):
        self.status = status
        self.reason = reason
        self.error = error
        self.requests: List[Dict] = []
        self.entered = threading.Event()
        self._released = threading.Event()
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        if not block:
            self._released.set()

    def release(self) -> None:
        self._released.set()

    def post(self, url: str, body: bytes, headers: Mapping[str, str], timeout: float) -> TransportResponse:
        with self._lock:
            self.requests.append({"url": url, "body": body, "headers": dict(headers), "timeout": timeout})
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.entered.set()
        try:
            self._released.wait(5.0)
            if self.error is not None:
                raise self.error
            return TransportResponse(status=self.status, reason=self.reason, body=b'{"ok":false}' if self.status > 299 else b"{}")
        finally:
            with self._lock:
                self.in_flight -= 1

    def bodies(self) -> List[List[bytes]]:
        """Each request body split into its records."""
        with self._lock:
            return [request["body"].splitlines() for request in self.requests]


class ManualTimer:
    """Timer that only fires when the test says so."""

    def __init__(self, interval: float, function: Callable[[], None]):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function()


class ManualTimerFactory:
    """Timer factory keeping every timer it builds."""

    def __init__(self):
        self.timers: List[ManualTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(interval, function)
        self.timers.append(timer)
        return timer

    def pending(self) -> List[ManualTimer]:
        return [timer for timer in self.timers if timer.started and not timer.cancelled]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def blocking_transport():
    fake = FakeTransport(block=True)
    yield fake
    fake.release()


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG", format="{level} {message}")
    yield messages
    logger.remove(handler_id)
