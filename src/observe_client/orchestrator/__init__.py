"""Engine coordinating validation, batching and transmission."""

from .observer import ERR_OBSERVER_CLOSED, Observer

__all__ = ["Observer", "ERR_OBSERVER_CLOSED"]
