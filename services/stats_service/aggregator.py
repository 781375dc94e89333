"""
Pause statistics: nearest-rank percentiles and a truncated mean.

Percentiles pick an existing sample at rank floor(p/100 * n + 0.5),
clamped to the last index. Every reported value is a real observed
pause, so p100 is the max.

Everything here is pure: no I/O, no state beyond the arguments. All
functions are total; an empty window yields zeros, never an error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence

# Thresholds reported in every snapshot, highest first.
PAUSE_PERCENTILES = (100, 99, 95, 90, 80, 70, 60, 50)

_NS_PER_USEC = 1000


def sort_ascending(samples: Iterable[int]) -> List[int]:
    """Return a new ascending list. The input is never mutated."""
    return sorted(samples)


def percentile(p: float, sorted_samples: Sequence[int], length: int) -> int:
    """
    Nearest-rank percentile over the first ``length`` entries.

    ``sorted_samples[:length]`` must already be ascending; this function
    does not sort.
    """
    if length <= 0:
        return 0
    index = int(math.floor((p / 100.0) * length + 0.5))
    if index >= length:
        index = length - 1
    elif index < 0:
        index = 0
    return sorted_samples[index]


def average(samples: Sequence[int]) -> int:
    """Integer mean, truncated toward zero. Zero for an empty sequence."""
    if not samples:
        return 0
    return sum(samples) // len(samples)


@dataclass(frozen=True)
class DerivedStats:
    """Pause percentiles and average, in microseconds."""

    avg_gc_pause_usec: int = 0
    gc_pause_usec_100: int = 0
    gc_pause_usec_99: int = 0
    gc_pause_usec_95: int = 0
    gc_pause_usec_90: int = 0
    gc_pause_usec_80: int = 0
    gc_pause_usec_70: int = 0
    gc_pause_usec_60: int = 0
    gc_pause_usec_50: int = 0


def derive_pause_stats(samples: Iterable[int]) -> DerivedStats:
    """Sort a copy of the nanosecond samples and reduce them to DerivedStats."""
    ordered = sort_ascending(samples)
    n = len(ordered)
    fields = {
        f"gc_pause_usec_{p}": percentile(float(p), ordered, n) // _NS_PER_USEC
        for p in PAUSE_PERCENTILES
    }
    return DerivedStats(avg_gc_pause_usec=average(ordered) // _NS_PER_USEC, **fields)
