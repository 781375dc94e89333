"""
Live counter source backed by the running CPython interpreter.
"""

from __future__ import annotations

import gc
import sys
import threading
import tracemalloc
from typing import Optional, Sequence, Tuple

import psutil

from services.runtime_service.counters import RawCounterSet
from services.runtime_service.gc_monitor import GCPauseMonitor


def _per_generation(values: Sequence[int]) -> Tuple[int, int, int]:
    """Pad/trim to the three generations the snapshot reports."""
    padded = list(values[:3]) + [0] * (3 - min(len(values), 3))
    return padded[0], padded[1], padded[2]


class PythonRuntimeSource:
    """RuntimeCounterSource over gc, sys, threading, tracemalloc and psutil."""

    def __init__(self, monitor: Optional[GCPauseMonitor] = None) -> None:
        self.monitor = monitor or GCPauseMonitor()
        self._process = psutil.Process()

    def read_counters(self) -> RawCounterSet:
        ring = self.monitor.read()
        mem = self._process.memory_info()

        gen_stats = gc.get_stats()
        collections = _per_generation([s.get("collections", 0) for s in gen_stats])
        counts = _per_generation(gc.get_count())
        thresholds = _per_generation(gc.get_threshold())

        if tracemalloc.is_tracing():
            traced, traced_peak = tracemalloc.get_traced_memory()
        else:
            traced, traced_peak = 0, 0

        return RawCounterSet(
            num_threads=threading.active_count(),
            allocated_blocks=sys.getallocatedblocks(),
            rss_bytes=mem.rss,
            vms_bytes=mem.vms,
            traced_memory_bytes=traced,
            traced_memory_peak_bytes=traced_peak,
            gen0_count=counts[0],
            gen1_count=counts[1],
            gen2_count=counts[2],
            gen0_threshold=thresholds[0],
            gen1_threshold=thresholds[1],
            gen2_threshold=thresholds[2],
            gen0_collections=collections[0],
            gen1_collections=collections[1],
            gen2_collections=collections[2],
            collected_objects=sum(s.get("collected", 0) for s in gen_stats),
            uncollectable_objects=sum(s.get("uncollectable", 0) for s in gen_stats),
            garbage_objects=len(gc.garbage),
            frozen_objects=gc.get_freeze_count(),
            num_gc=ring.num_gc,
            last_gc_ns=ring.last_gc_ns,
            pause_total_ns=ring.pause_total_ns,
            pause_ns=ring.pause_ns,
            gc_cpu_fraction=ring.gc_cpu_fraction,
        )
