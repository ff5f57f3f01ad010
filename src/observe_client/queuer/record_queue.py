"""In-memory record buffer for the Observe client.

This module provides the buffer that accumulates encoded records between
flushes. A flush detaches the whole buffer at once by swapping in a fresh
list, so new submissions fill the new buffer while the detached batch is
being transmitted.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List

from loguru import logger

from ..core.completion import CompletionSink


@dataclass
class QueuedItem:
    """An encoded record waiting for transmission."""

    payload: bytes
    sink: CompletionSink = field(default_factory=CompletionSink)

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass
class Batch:
    """Records detached together and sent in one request."""

    items: List[QueuedItem] = field(default_factory=list)
    size_bytes: int = 0
    batch_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def size(self) -> int:
        """Return the number of records in the batch."""
        return len(self.items)

    def is_empty(self) -> bool:
        return not self.items

    def body(self) -> bytes:
        """Concatenate the encoded records in submission order."""
        return b"".join(item.payload for item in self.items)


class RecordQueue:
    """Thread-safe ordered buffer with a running byte counter."""

    def __init__(self):
        """Initialize an empty buffer."""
        self._items: List[QueuedItem] = []
        self._size_bytes = 0
        self._lock = threading.RLock()

        # Statistics
        self._total_enqueued = 0
        self._total_detached = 0
        self._total_batches = 0

    def append(self, item: QueuedItem) -> int:
        """Add an item to the end of the buffer.

        Args:
            item: Encoded record to queue

        Returns:
            Number of items queued after the append
        """
        with self._lock:
            self._items.append(item)
            self._size_bytes += item.size
            self._total_enqueued += 1
            return len(self._items)

    def detach(self) -> Batch:
        """Swap out the current buffer and reset the byte counter.

        Returns:
            The detached batch (possibly empty)
        """
        with self._lock:
            items, self._items = self._items, []
            size_bytes, self._size_bytes = self._size_bytes, 0

            if items:
                self._total_detached += len(items)
                self._total_batches += 1

        batch = Batch(items=items, size_bytes=size_bytes)
        if items:
            logger.debug(f"Detached batch {batch.batch_id} with {batch.size()} records ({size_bytes} bytes)")
        return batch

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def size_bytes(self) -> int:
        """Sum of the encoded sizes of the queued items."""
        with self._lock:
            return self._size_bytes

    def is_empty(self) -> bool:
        """Check if the buffer is empty."""
        with self._lock:
            return not self._items

    def get_stats(self) -> Dict[str, Any]:
        """Get buffer statistics."""
        with self._lock:
            return {
                "current_size": len(self._items),
                "current_size_bytes": self._size_bytes,
                "total_enqueued": self._total_enqueued,
                "total_detached": self._total_detached,
                "total_batches": self._total_batches,
            }
