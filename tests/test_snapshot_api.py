"""
Tests for snapshot assembly and the HTTP surface: record contents,
JSON encoding, headers, the 500 path, and listener startup failures.
"""
import gc
import os
import socket
import sys

import httpx
import orjson
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from services.api_gateway.app import (
    bind_listener,
    create_app,
    main,
    start_background_server,
)
from services.api_gateway.endpoints.snapshot import JSON_CONTENT_TYPE
from services.api_gateway.errors import ListenerBindError, SerializationError
from services.api_gateway.models import SnapshotRecord
from services.api_gateway.snapshot import build_snapshot, render_snapshot

DOCUMENTED_KEYS = {
    "num_threads",
    "allocated_blocks",
    "rss_bytes",
    "vms_bytes",
    "traced_memory_bytes",
    "traced_memory_peak_bytes",
    "gen0_count",
    "gen1_count",
    "gen2_count",
    "gen0_threshold",
    "gen1_threshold",
    "gen2_threshold",
    "gen0_collections",
    "gen1_collections",
    "gen2_collections",
    "collected_objects",
    "uncollectable_objects",
    "garbage_objects",
    "frozen_objects",
    "num_gc",
    "last_gc_ns",
    "pause_total_ns",
    "gc_cpu_fraction",
    "avg_gc_pause_usec",
    "gc_pause_usec_100",
    "gc_pause_usec_99",
    "gc_pause_usec_95",
    "gc_pause_usec_90",
    "gc_pause_usec_80",
    "gc_pause_usec_70",
    "gc_pause_usec_60",
    "gc_pause_usec_50",
}


def _assert_numeric_record(data: dict) -> None:
    assert set(data) == DOCUMENTED_KEYS
    for key, value in data.items():
        assert isinstance(value, (int, float)) and not isinstance(value, bool), key
    assert isinstance(data["num_threads"], int)


# ── build_snapshot / render_snapshot ───────────────────────

class TestBuildSnapshot:
    def test_reads_source_once(self, fixed_source_factory):
        source = fixed_source_factory(pauses=[1000])
        build_snapshot(source)
        assert source.reads == 1

    def test_counters_copied_through(self, fixed_source_factory):
        source = fixed_source_factory(pauses=[1000, 2000], allocated_blocks=123)
        record = build_snapshot(source)
        assert record.allocated_blocks == 123
        assert record.num_gc == 2
        assert record.pause_total_ns == 3000
        assert record.gen0_threshold == 700

    def test_derived_from_valid_prefix_only(self, fixed_source_factory):
        source = fixed_source_factory(pauses=[3000, 1000, 2000], fill=10**12)
        record = build_snapshot(source)
        assert record.avg_gc_pause_usec == 2
        assert record.gc_pause_usec_100 == 3
        assert record.gc_pause_usec_50 == 3

    def test_no_cycles_all_zero(self, fixed_source_factory):
        record = build_snapshot(fixed_source_factory(pauses=[], fill=777_000))
        assert record.avg_gc_pause_usec == 0
        assert record.gc_pause_usec_100 == 0
        assert record.gc_pause_usec_50 == 0

    def test_source_ring_untouched(self, fixed_source_factory):
        source = fixed_source_factory(pauses=[3, 1, 2])
        build_snapshot(source)
        assert source.counters.pause_ns[:3] == (3, 1, 2)

    def test_record_is_frozen(self, fixed_source_factory):
        record = build_snapshot(fixed_source_factory(pauses=[1000]))
        with pytest.raises(Exception):
            record.num_gc = 99

    def test_cpu_fraction_optional(self, fixed_source_factory):
        record = build_snapshot(fixed_source_factory(pauses=[1000]), include_gc_cpu_fraction=False)
        assert record.gc_cpu_fraction is None
        data = orjson.loads(render_snapshot(record))
        assert "gc_cpu_fraction" not in data


class TestRenderSnapshot:
    def test_flat_json(self, fixed_source_factory):
        body = render_snapshot(build_snapshot(fixed_source_factory(pauses=[1000, 2000])))
        data = orjson.loads(body)
        _assert_numeric_record(data)
        assert "pause_ns" not in data

    def test_oversized_integer_raises(self, fixed_source_factory):
        record = build_snapshot(fixed_source_factory(pauses=[1000], allocated_blocks=2**70))
        with pytest.raises(SerializationError):
            render_snapshot(record)


# ── HTTP ───────────────────────────────────────────────────

class TestSnapshotEndpoint:
    def test_success_headers_and_body(self, fixed_source_factory):
        app = create_app(fixed_source_factory(pauses=[3000, 1000, 2000]))
        with TestClient(app) as client:
            resp = client.get("/")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == JSON_CONTENT_TYPE
        assert int(resp.headers["content-length"]) == len(resp.content)
        data = resp.json()
        _assert_numeric_record(data)
        assert data["num_gc"] == 3
        assert data["avg_gc_pause_usec"] == 2

    def test_body_parses_into_record(self, fixed_source_factory):
        app = create_app(fixed_source_factory(pauses=[5000]))
        with TestClient(app) as client:
            resp = client.get("/debug/runtime")
        record = SnapshotRecord.model_validate_json(resp.content)
        assert record.gc_pause_usec_99 == 5

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE", "PATCH"])
    @pytest.mark.parametrize("path", ["/", "/metrics", "/a/b/c"])
    def test_any_path_any_method(self, fixed_source_factory, method, path):
        app = create_app(fixed_source_factory(pauses=[1000]))
        with TestClient(app) as client:
            resp = client.request(method, path, content=b"ignored body")
        assert resp.status_code == 200
        assert resp.json()["gc_pause_usec_100"] == 1

    def test_every_request_reads_fresh(self, fixed_source_factory):
        source = fixed_source_factory(pauses=[1000])
        with TestClient(create_app(source)) as client:
            client.get("/")
            client.get("/")
        assert source.reads == 2

    def test_serialization_failure_is_500(self, fixed_source_factory):
        app = create_app(fixed_source_factory(pauses=[1000], rss_bytes=2**70))
        with TestClient(app) as client:
            resp = client.get("/")
        assert resp.status_code == 500
        assert resp.text == "JSON serialization error"
        assert set(resp.headers) == {"content-length"}
        assert resp.headers["content-length"] == str(len(b"JSON serialization error"))

    def test_live_runtime(self):
        app = create_app()
        source = app.state.counter_source
        with TestClient(app) as client:
            assert source.monitor.installed
            gc.collect()
            first = client.get("/").json()
            gc.collect()
            second = client.get("/").json()
        assert not source.monitor.installed

        _assert_numeric_record(first)
        assert first["num_gc"] >= 1
        for key in ("num_gc", "pause_total_ns", "collected_objects", "gen0_collections"):
            assert second[key] >= first[key], key


# ── Listener ───────────────────────────────────────────────

class TestListener:
    def test_port_in_use(self):
        occupied = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        occupied.bind(("127.0.0.1", 0))
        occupied.listen(1)
        try:
            port = occupied.getsockname()[1]
            with pytest.raises(ListenerBindError):
                bind_listener("127.0.0.1", port)
        finally:
            occupied.close()

    @pytest.mark.parametrize("port", ["not-a-port", "", 70000, -1])
    def test_invalid_port(self, port):
        with pytest.raises(ListenerBindError):
            bind_listener("127.0.0.1", port)

    def test_string_port_accepted(self):
        sock = bind_listener("127.0.0.1", "0")
        try:
            assert sock.getsockname()[1] > 0
        finally:
            sock.close()

    @pytest.mark.skipif(not socket.has_dualstack_ipv6(), reason="no dual-stack support")
    @pytest.mark.parametrize("host", ["0.0.0.0", ""])
    def test_wildcard_host_accepts_ipv4(self, host):
        sock = bind_listener(host, 0)
        try:
            if sock.family == socket.AF_INET6:
                assert sock.getsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY) == 0
            port = sock.getsockname()[1]
            with socket.create_connection(("127.0.0.1", port), timeout=2.0):
                pass
        finally:
            sock.close()

    def test_main_exits_nonzero_on_bind_failure(self):
        with pytest.raises(SystemExit) as exc:
            main(["--port", "not-a-port"])
        assert exc.value.code == 1

    def test_background_server_end_to_end(self, fixed_source_factory):
        target = create_app(fixed_source_factory(pauses=[2000, 4000]))
        bg = start_background_server(0, target=target)
        try:
            assert bg.server.started
            resp = httpx.get(f"http://127.0.0.1:{bg.port}/anything", timeout=5.0)
        finally:
            bg.stop()
        assert resp.status_code == 200
        assert resp.headers["content-type"] == JSON_CONTENT_TYPE
        assert int(resp.headers["content-length"]) == len(resp.content)
        assert resp.json()["avg_gc_pause_usec"] == 3
        assert not bg.thread.is_alive()
