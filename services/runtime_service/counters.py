"""
Raw runtime counters and the pause-sample window over them.

The counter set is a plain frozen value: one read of the interpreter's
allocator and GC state, owned by a single request and then discarded.
Where the values come from is hidden behind RuntimeCounterSource, so the
snapshot path can run against a fixture in tests and against the live
interpreter in production.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Tuple

# Fixed size of the pause ring. Not configurable.
PAUSE_RING_CAPACITY = 256


@dataclass(frozen=True)
class RawCounterSet:
    """One instantaneous read of the host runtime's memory and GC counters."""

    num_threads: int

    # Allocator
    allocated_blocks: int
    rss_bytes: int
    vms_bytes: int
    traced_memory_bytes: int
    traced_memory_peak_bytes: int

    # Generational GC
    gen0_count: int
    gen1_count: int
    gen2_count: int
    gen0_threshold: int
    gen1_threshold: int
    gen2_threshold: int
    gen0_collections: int
    gen1_collections: int
    gen2_collections: int
    collected_objects: int
    uncollectable_objects: int
    garbage_objects: int
    frozen_objects: int

    # Observed pauses. pause_ns is a ring: the most recent pause sits at
    # (num_gc + capacity - 1) % capacity.
    num_gc: int
    last_gc_ns: int
    pause_total_ns: int
    pause_ns: Tuple[int, ...]
    gc_cpu_fraction: float = 0.0


@dataclass(frozen=True)
class PauseSampleWindow:
    """
    Index-bounded view into the pause ring.

    ``buffer`` always has the ring's full capacity; only the first
    ``length`` entries are real samples. While fewer cycles than the
    capacity have been observed the tail is unset and must not leak into
    any statistic. Once the ring has wrapped every slot is valid, and
    because order is irrelevant after sorting the prefix view still holds.
    """

    buffer: Tuple[int, ...]
    length: int

    @classmethod
    def from_counters(cls, raw: RawCounterSet) -> "PauseSampleWindow":
        capacity = len(raw.pause_ns)
        return cls(buffer=raw.pause_ns, length=max(0, min(capacity, raw.num_gc)))

    @property
    def capacity(self) -> int:
        return len(self.buffer)

    def samples(self) -> List[int]:
        """Fresh copy of the valid samples; callers may sort it in place."""
        return list(self.buffer[: self.length])


class RuntimeCounterSource(Protocol):
    """Read-only supplier of runtime counters. Reads never fail."""

    def read_counters(self) -> RawCounterSet:
        ...
