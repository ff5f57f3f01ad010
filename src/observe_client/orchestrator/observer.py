"""Observer: the batching engine of the Observe client.

This module coordinates the record flow:
send() → validation → RecordQueue → FlushTrigger → HTTPSender → completion

Records submitted while nothing is in flight are sent immediately. While a
transmission is in flight, records accumulate and are flushed when the batch
size or byte limit is reached or when the deferred flush timer fires. A single
background thread performs transmissions, so at most one request is in flight
and batches leave in the order they were detached.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Deque, Dict, Optional

from loguru import logger

from ..batcher import EngineState, FlushDecision, FlushTrigger, TimerFactory
from ..config import ObserverConfig
from ..core import Clock, CompletionCallback, CompletionHandle, CompletionSink, SystemClock, encode_record, resolved_handle
from ..queuer import Batch, QueuedItem, RecordQueue
from ..sender import HTTPSender, Transport

ERR_OBSERVER_CLOSED = "The observer is closed"


class Observer:
    """Sends structured records to an Observe collector in adaptive batches.

    Every ``send`` returns a ``concurrent.futures.Future`` that resolves with
    ``None`` on success or with an error string. It never raises, so records
    can be sent fire-and-forget. Use ``asyncio.wrap_future`` to await it from
    asyncio code.
    """

    def __init__(
        self,
        config: Optional[ObserverConfig] = None,
        *,
        transport: Optional[Transport] = None,
        clock: Optional[Clock] = None,
        timer_factory: Optional[TimerFactory] = None,
        **params: Any,
    ):
        """Initialize the observer.

        Args:
            config: Observer configuration; built from ``params`` when omitted
            transport: HTTP transport, urllib based by default
            clock: Source of injected timestamps
            timer_factory: Builds deferred flush timers
            **params: ObserverConfig fields (url, auth, batch_time_ms, ...)
        """
        if config is None:
            config = ObserverConfig(**params)
        elif params:
            raise TypeError("Pass either an ObserverConfig or keyword parameters, not both")

        self.config = config
        self.clock: Clock = clock or SystemClock()
        self.queue = RecordQueue()
        self.sender = HTTPSender(config.url, config.auth, timeout_seconds=config.timeout_seconds, transport=transport)
        self.trigger = FlushTrigger(
            batch_size=config.batch_size,
            size_limit_bytes=config.size_limit_bytes,
            batch_time_seconds=config.batch_time_seconds,
            on_timer=self._on_timer,
            timer_factory=timer_factory,
        )

        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._state = EngineState.IDLE
        self._outbox: Deque[Batch] = deque()
        self._busy = False  # a batch is being sent or its handles resolved
        self._closed = False
        self._stopping = False
        self._worker: Optional[threading.Thread] = None

        # Statistics
        self._total_submitted = 0
        self._total_rejected = 0
        self._total_flushes = 0

    @property
    def state(self) -> EngineState:
        with self._lock:
            return self._state

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def send(self, record: Any, callback: Optional[CompletionCallback] = None) -> CompletionHandle:
        """Queue a record and return a handle resolving when it was sent.

        When nothing is in flight the record is sent immediately. Otherwise it
        is buffered and sent with the next batch.

        Args:
            record: Mapping, pydantic model or dataclass instance
            callback: Also called with the outcome

        Returns:
            Future resolving with None on success or an error string
        """
        return self._submit(record, callback, force=False)

    def send_now(self, record: Any, callback: Optional[CompletionCallback] = None) -> CompletionHandle:
        """Queue a record and flush it together with everything buffered before it."""
        return self._submit(record, callback, force=True)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Send whatever is buffered and wait until nothing is pending.

        Args:
            timeout: Maximum seconds to wait

        Returns:
            True if every record was sent and resolved within the timeout
        """
        with self._lock:
            if not self.queue.is_empty():
                self._flush_locked()
            if threading.current_thread() is self._worker:
                # called from a completion callback: waiting would block the sender
                return self._drained()
            return self._changed.wait_for(self._drained, timeout=timeout)

    def close(self, timeout: Optional[float] = None) -> bool:
        """Flush pending records and stop the sender thread.

        Records submitted afterwards resolve immediately with an error.
        """
        with self._lock:
            if self._closed:
                return True
            self._closed = True

        drained = self.flush(timeout)

        with self._lock:
            self.trigger.disarm()
            self._stopping = True
            self._changed.notify_all()
            worker = self._worker

        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)

        logger.info(f"Closed observer. Stats - Submitted: {self._total_submitted}, Rejected: {self._total_rejected}, Flushes: {self._total_flushes}")
        return drained

    def get_stats(self) -> Dict[str, Any]:
        """Get observer statistics."""
        with self._lock:
            return {
                "state": self._state.value,
                "closed": self._closed,
                "total_submitted": self._total_submitted,
                "total_rejected": self._total_rejected,
                "total_flushes": self._total_flushes,
                "pending_batches": len(self._outbox),
                "queue": self.queue.get_stats(),
                "trigger": self.trigger.get_stats(),
                "sender": self.sender.get_stats(),
            }

    def __enter__(self) -> Observer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _submit(self, record: Any, callback: Optional[CompletionCallback], force: bool) -> CompletionHandle:
        """Validate and queue a record, then flush or arm the deferred flush.

        Rejected records are resolved outside the lock so their callbacks
        never run while the engine is locked.
        """
        encoded = encode_record(record, self.clock)
        if isinstance(encoded, str):
            return self._reject(encoded, callback)

        item = QueuedItem(payload=encoded.payload, sink=CompletionSink(callback))

        with self._lock:
            if self._closed:
                logger.warning("Observer is closed, dropping record")
            else:
                count = self.queue.append(item)
                self._total_submitted += 1

                if force or self.trigger.evaluate(self._state, count, self.queue.size_bytes) is FlushDecision.IMMEDIATE:
                    self._flush_locked()
                else:
                    self.trigger.arm()
                return item.sink.future

        return self._reject(ERR_OBSERVER_CLOSED, callback)

    def _reject(self, error: str, callback: Optional[CompletionCallback]) -> CompletionHandle:
        with self._lock:
            self._total_rejected += 1
        return resolved_handle(error, callback)

    def _flush_locked(self) -> None:
        """Detach the buffer and hand it to the sender thread. Caller holds the lock."""
        self._state = EngineState.SENDING
        self.trigger.disarm()
        batch = self.queue.detach()
        if batch.is_empty():
            self._settle_state()
            return

        self._total_flushes += 1
        self._outbox.append(batch)
        self._ensure_worker()
        self._changed.notify_all()

    def _on_timer(self) -> None:
        with self._lock:
            # the buffer may already have been drained by a size or count flush
            if not self.queue.is_empty():
                logger.debug("Flushing batch due to timeout")
                self._flush_locked()

    def _settle_state(self) -> None:
        if self.queue.is_empty() and not self._outbox and not self._busy:
            self._state = EngineState.IDLE

    def _drained(self) -> bool:
        return self.queue.is_empty() and not self._outbox and not self._busy

    def _ensure_worker(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._stopping = False
        self._worker = threading.Thread(target=self._send_loop, name="observe-sender", daemon=True)
        self._worker.start()

    def _next_batch(self) -> Optional[Batch]:
        with self._lock:
            while not self._outbox and not self._stopping:
                self._changed.wait()
            if not self._outbox:
                return None
            self._busy = True
            return self._outbox.popleft()

    def _send_loop(self) -> None:
        """Send detached batches one at a time, in order."""
        logger.debug("Started sender loop")

        while (batch := self._next_batch()) is not None:
            outcome = self.sender.send_batch(batch)

            with self._lock:
                # Nothing queued meanwhile: back to low-latency mode
                if self.queue.is_empty() and not self._outbox:
                    self._state = EngineState.IDLE

            try:
                self._resolve_batch(batch, outcome.error)
            finally:
                with self._lock:
                    self._busy = False
                    self._changed.notify_all()

        logger.debug("Sender loop finished")

    @staticmethod
    def _resolve_batch(batch: Batch, error: Optional[str]) -> None:
        for item in batch.items:
            try:
                item.sink.resolve(error)
            except Exception:
                logger.exception(f"Failed to resolve a record of batch {batch.batch_id}")
