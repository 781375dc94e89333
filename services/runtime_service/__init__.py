"""
Runtime Service Package: read-only access to the interpreter's memory and GC counters.
"""

from services.runtime_service.counters import (
    PAUSE_RING_CAPACITY,
    PauseSampleWindow,
    RawCounterSet,
    RuntimeCounterSource,
)
from services.runtime_service.gc_monitor import GCPauseMonitor, PauseRingState
from services.runtime_service.python_source import PythonRuntimeSource

__all__ = [
    "PAUSE_RING_CAPACITY",
    "PauseSampleWindow",
    "RawCounterSet",
    "RuntimeCounterSource",
    "GCPauseMonitor",
    "PauseRingState",
    "PythonRuntimeSource",
]
