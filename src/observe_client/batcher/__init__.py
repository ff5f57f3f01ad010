"""Flush trigger logic for batching records under load."""

from .flush_trigger import EngineState, FlushDecision, FlushTrigger, Timer, TimerFactory

__all__ = ["FlushTrigger", "FlushDecision", "EngineState", "Timer", "TimerFactory"]
