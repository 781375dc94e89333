"""
GC pause monitor: a bounded ring of recent collection pause durations.

CPython doesn't keep pause history, so we build it from gc.callbacks:
the "start" phase stamps perf_counter_ns(), the "stop" phase writes the
elapsed time into slot num_gc % capacity and bumps the cycle counter.

Rules for the callback:
  1. It runs inside the collector, on whichever thread triggered the
     collection. It must not take locks (the triggering thread may already
     hold one), must not log, and must never raise.
  2. Only plain int stores happen there. The GIL makes each store atomic.

Readers suspend automatic collection while they copy the ring so the
counters in one snapshot belong together. That is a short, bounded pause
imposed on the process by every snapshot read.
"""

from __future__ import annotations

import gc
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

import psutil

from services.runtime_service.counters import PAUSE_RING_CAPACITY
from utils.logger import get_logger

_log = get_logger(__name__)


@dataclass(frozen=True)
class PauseRingState:
    """Consistent copy of the monitor's counters."""

    num_gc: int
    pause_total_ns: int
    last_gc_ns: int
    pause_ns: Tuple[int, ...]
    gc_cpu_fraction: float


class GCPauseMonitor:
    """Records every observed collection into a fixed-capacity ring."""

    def __init__(self, capacity: int = PAUSE_RING_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._pause_ns = [0] * capacity
        self._num_gc = 0
        self._pause_total_ns = 0
        self._last_gc_ns = 0
        self._pause_start_ns: Optional[int] = None
        self._process = psutil.Process()
        self._cpu_origin_ns = self._cpu_ns()
        self._read_lock = threading.Lock()
        self._callback = self._on_gc
        self._installed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def installed(self) -> bool:
        return self._installed

    # ── Lifecycle ───────────────────────────────────────────

    def install(self) -> None:
        """Start observing collections. No-op if already installed."""
        if self._installed:
            return
        gc.callbacks.append(self._callback)
        self._installed = True
        _log.info("gc_monitor_installed", capacity=self._capacity)

    def uninstall(self) -> None:
        """Stop observing collections. Recorded history is kept."""
        if not self._installed:
            return
        try:
            gc.callbacks.remove(self._callback)
        except ValueError:
            # Someone cleared gc.callbacks behind our back.
            pass
        self._installed = False
        self._pause_start_ns = None
        _log.info("gc_monitor_uninstalled", num_gc=self._num_gc)

    # ── Recording ───────────────────────────────────────────

    def _on_gc(self, phase: str, info: Dict[str, Any]) -> None:
        if phase == "start":
            self._pause_start_ns = time.perf_counter_ns()
        elif phase == "stop" and self._pause_start_ns is not None:
            self.record_pause(time.perf_counter_ns() - self._pause_start_ns)
            self._pause_start_ns = None

    def record_pause(self, duration_ns: int, end_ns: Optional[int] = None) -> None:
        """Write one pause into the ring. Slot first, then the counter."""
        self._pause_ns[self._num_gc % self._capacity] = duration_ns
        self._pause_total_ns += duration_ns
        self._last_gc_ns = time.time_ns() if end_ns is None else end_ns
        self._num_gc += 1

    # ── Reading ─────────────────────────────────────────────

    @contextmanager
    def _collection_suspended(self) -> Iterator[None]:
        # The lock only serializes readers, so concurrent snapshots can't
        # leave automatic collection disabled behind each other.
        with self._read_lock:
            was_enabled = gc.isenabled()
            gc.disable()
            try:
                yield
            finally:
                if was_enabled:
                    gc.enable()

    def _cpu_ns(self) -> int:
        times = self._process.cpu_times()
        return int((times.user + times.system) * 1_000_000_000)

    def read(self) -> PauseRingState:
        with self._collection_suspended():
            # Counter before ring: an explicit gc.collect() on another thread
            # can only add a slot beyond the window we report, never leave
            # an unset slot inside it.
            num_gc = self._num_gc
            pause_total_ns = self._pause_total_ns
            last_gc_ns = self._last_gc_ns
            pause_ns = tuple(self._pause_ns)

        cpu_ns = self._cpu_ns() - self._cpu_origin_ns
        fraction = pause_total_ns / cpu_ns if cpu_ns > 0 else 0.0
        return PauseRingState(
            num_gc=num_gc,
            pause_total_ns=pause_total_ns,
            last_gc_ns=last_gc_ns,
            pause_ns=pause_ns,
            gc_cpu_fraction=min(fraction, 1.0),
        )
