"""
Timing helper for snapshot instrumentation.

time.perf_counter_ns() is monotonic and nanosecond-resolution, the same
clock the GC pause monitor uses, so handler latency and pause durations
are directly comparable in the logs.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

from utils.logger import get_logger

_log = get_logger(__name__)


@dataclass
class Elapsed:
    """Wall time of a timed block. Zero until the block exits."""

    ns: int = 0

    @property
    def ms(self) -> float:
        return self.ns / 1_000_000


@contextmanager
def timed(label: Optional[str] = None) -> Generator[Elapsed, None, None]:
    """
    Measure the wrapped block; log it at debug level when ``label`` is given.

    Usage:
        with timed() as t:
            record = build_snapshot(source)
        t.ms
    """
    elapsed = Elapsed()
    start = time.perf_counter_ns()
    try:
        yield elapsed
    finally:
        elapsed.ns = time.perf_counter_ns() - start
        if label is not None:
            _log.debug(label, latency_ms=round(elapsed.ms, 3))
