"""Per-record completion handles.

Every submitted record gets a CompletionSink. The sink owns a
``concurrent.futures.Future`` that is handed back to the caller and an
optional callback. The future is only ever given a result: ``None`` on
success or an error string on failure, never an exception.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Optional

from loguru import logger

CompletionCallback = Callable[[Optional[str]], None]
CompletionHandle = Future  # Future[Optional[str]]


class CompletionSink:
    """Resolves one record's handle and callback exactly once."""

    __slots__ = ("future", "callback", "_lock", "_resolved")

    def __init__(self, callback: Optional[CompletionCallback] = None):
        self.future: CompletionHandle = Future()
        # a running future can no longer be cancelled by the caller
        self.future.set_running_or_notify_cancel()
        self.callback = callback
        self._lock = threading.Lock()
        self._resolved = False

    @property
    def resolved(self) -> bool:
        with self._lock:
            return self._resolved

    def resolve(self, error: Optional[str] = None) -> bool:
        """Deliver the outcome to the callback and the future.

        Args:
            error: ``None`` for success, otherwise a failure description

        Returns:
            True if this call resolved the sink, False if it already was
        """
        with self._lock:
            if self._resolved:
                logger.warning(f"Ignoring second resolution of a completion handle: {error}")
                return False
            self._resolved = True

        # Callers only ever see None, not other falsy values
        if not error:
            error = None

        if self.callback is not None:
            try:
                self.callback(error)
            except Exception:
                logger.exception("Exception in send callback")

        self.future.set_result(error)
        return True


def resolved_handle(error: Optional[str], callback: Optional[CompletionCallback] = None) -> CompletionHandle:
    """Build a sink, resolve it immediately and return its handle."""
    sink = CompletionSink(callback)
    sink.resolve(error)
    return sink.future
