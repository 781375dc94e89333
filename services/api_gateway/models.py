"""
Response model: the flat snapshot record served as JSON.

frozen=True: a record is never mutated after assembly. Each request
builds its own.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SnapshotRecord(BaseModel):
    """Raw runtime counters merged with derived pause statistics. No nesting."""

    model_config = ConfigDict(frozen=True)

    # ── Threads ─────────────────────────────────────────────
    num_threads: int = Field(..., description="Live Python threads")

    # ── Allocator ───────────────────────────────────────────
    allocated_blocks: int = Field(..., description="Memory blocks currently allocated by the interpreter")
    rss_bytes: int = Field(..., description="Current resident set size of the process")
    vms_bytes: int = Field(..., description="Current virtual memory size of the process")
    traced_memory_bytes: int = Field(..., description="tracemalloc current size (0 when not tracing)")
    traced_memory_peak_bytes: int = Field(..., description="tracemalloc peak size (0 when not tracing)")

    # ── Generational GC ─────────────────────────────────────
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
    garbage_objects: int = Field(..., description="Objects parked in gc.garbage")
    frozen_objects: int = Field(..., description="Objects moved to the permanent generation")

    # ── Observed pauses ─────────────────────────────────────
    num_gc: int = Field(..., description="Collections observed since monitoring began")
    last_gc_ns: int = Field(..., description="End of the last observed collection, ns since epoch")
    pause_total_ns: int
    gc_cpu_fraction: Optional[float] = Field(
        default=None,
        description="Share of process CPU time spent in observed collections",
    )

    # ── Derived (microseconds) ──────────────────────────────
    avg_gc_pause_usec: int
    gc_pause_usec_100: int
    gc_pause_usec_99: int
    gc_pause_usec_95: int
    gc_pause_usec_90: int
    gc_pause_usec_80: int
    gc_pause_usec_70: int
    gc_pause_usec_60: int
    gc_pause_usec_50: int
