"""
Snapshot endpoint: every path, every method, same answer.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from configs.settings import get_settings
from utils.logger import get_logger
from utils.timing import timed

from services.api_gateway.errors import SerializationError
from services.api_gateway.snapshot import build_snapshot, render_snapshot

_log = get_logger(__name__)
router = APIRouter(tags=["runtime"])

JSON_CONTENT_TYPE = "application/json;charset=UTF-8"

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# Plain `def`: Starlette runs it on its worker thread pool, so the blocking
# counter read never stalls the event loop.
@router.api_route("/{path:path}", methods=_ALL_METHODS, include_in_schema=False)
def serve_snapshot(path: str, request: Request) -> Response:
    """Current runtime snapshot as JSON. The request body is never read."""
    cfg = get_settings()
    source = request.app.state.counter_source

    with timed() as build_t:
        record = build_snapshot(
            source,
            include_gc_cpu_fraction=cfg.include_gc_cpu_fraction,
        )

    try:
        body = render_snapshot(record)
    except SerializationError as e:
        _log.error("snapshot_serialization_failed", path=path, error=str(e))
        return Response(content=b"JSON serialization error", status_code=500)

    _log.debug(
        "snapshot_served",
        method=request.method,
        path=path,
        bytes=len(body),
        build_ms=round(build_t.ms, 3),
        num_gc=record.num_gc,
    )
    return Response(
        content=body,
        status_code=200,
        headers={
            "Content-Type": JSON_CONTENT_TYPE,
            "Content-Length": str(len(body)),
        },
    )
