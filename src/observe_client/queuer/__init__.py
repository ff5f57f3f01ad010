"""In-memory buffering of encoded records."""

from .record_queue import Batch, QueuedItem, RecordQueue

__all__ = ["RecordQueue", "QueuedItem", "Batch"]
