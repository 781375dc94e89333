"""
Shared fixtures: deterministic counter sets and a fixed counter source.
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from services.runtime_service import PAUSE_RING_CAPACITY, RawCounterSet


class FixedSource:
    """RuntimeCounterSource that always returns the same counters."""

    def __init__(self, counters: RawCounterSet) -> None:
        self.counters = counters
        self.reads = 0

    def read_counters(self) -> RawCounterSet:
        self.reads += 1
        return self.counters


def make_counters(pauses=(), num_gc=None, fill=0, capacity=PAUSE_RING_CAPACITY, **overrides):
    """
    Build a RawCounterSet whose ring starts with ``pauses`` and whose
    remaining slots hold ``fill``.
    """
    ring = list(pauses)[:capacity]
    ring += [fill] * (capacity - len(ring))
    fields = dict(
        num_threads=2,
        allocated_blocks=50_000,
        rss_bytes=40 * 1024 * 1024,
        vms_bytes=400 * 1024 * 1024,
        traced_memory_bytes=0,
        traced_memory_peak_bytes=0,
        gen0_count=120,
        gen1_count=3,
        gen2_count=1,
        gen0_threshold=700,
        gen1_threshold=10,
        gen2_threshold=10,
        gen0_collections=40,
        gen1_collections=4,
        gen2_collections=1,
        collected_objects=900,
        uncollectable_objects=0,
        garbage_objects=0,
        frozen_objects=0,
        num_gc=len(pauses) if num_gc is None else num_gc,
        last_gc_ns=1_700_000_000_000_000_000,
        pause_total_ns=sum(pauses),
        pause_ns=tuple(ring),
        gc_cpu_fraction=0.01,
    )
    fields.update(overrides)
    return RawCounterSet(**fields)


@pytest.fixture
def counters_factory():
    return make_counters


@pytest.fixture
def fixed_source_factory():
    def _factory(**kwargs):
        return FixedSource(make_counters(**kwargs))
    return _factory
