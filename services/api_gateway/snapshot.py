"""
Snapshot assembly: one fresh counter read in, one JSON body out.

The critical path per request:
  1. read_counters() on the injected source (no caching, ever)
  2. bound the pause ring to its valid prefix and copy it
  3. sort the copy, reduce to percentiles + average
  4. merge counters and stats into a flat SnapshotRecord
  5. orjson encode
"""

from __future__ import annotations

import dataclasses

import orjson

from services.api_gateway.errors import SerializationError
from services.api_gateway.models import SnapshotRecord
from services.runtime_service import PauseSampleWindow, RawCounterSet, RuntimeCounterSource
from services.stats_service import derive_pause_stats

# The ring is summarized, not exported.
_UNEXPORTED = frozenset({"pause_ns"})


def _counter_fields(raw: RawCounterSet) -> dict:
    return {
        f.name: getattr(raw, f.name)
        for f in dataclasses.fields(raw)
        if f.name not in _UNEXPORTED
    }


def build_snapshot(
    source: RuntimeCounterSource,
    *,
    include_gc_cpu_fraction: bool = True,
) -> SnapshotRecord:
    """Read the runtime once and assemble the record."""
    raw = source.read_counters()
    window = PauseSampleWindow.from_counters(raw)
    derived = derive_pause_stats(window.samples())

    counters = _counter_fields(raw)
    if not include_gc_cpu_fraction:
        counters.pop("gc_cpu_fraction")

    return SnapshotRecord(**counters, **dataclasses.asdict(derived))


def render_snapshot(record: SnapshotRecord) -> bytes:
    """Encode the record as a flat JSON object."""
    try:
        return orjson.dumps(record.model_dump(exclude_none=True))
    except orjson.JSONEncodeError as e:
        raise SerializationError(str(e)) from e
