"""
FastAPI gateway: serves this process's own runtime snapshot.

Architecture decisions:
  1. The counter source is injected. create_app() with no argument wires
     the live interpreter; tests pass a deterministic fixture.
  2. When the app owns the live source, its lifespan installs the GC pause
     monitor on startup and removes it on shutdown. Pauses before startup
     are not observed.
  3. We bind the listening socket ourselves and hand it to uvicorn. A bind
     failure surfaces as ListenerBindError in the caller, before any
     server machinery starts.
  4. No CORS, no auth, no docs routes: the catch-all snapshot route must
     own every path.
"""

from __future__ import annotations

import argparse
import errno
import socket
import sys
import threading
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional, Union

import uvicorn
from fastapi import FastAPI

from configs.settings import get_settings
from utils.logger import setup_logging, get_logger

from services.api_gateway.endpoints import snapshot_router
from services.api_gateway.errors import ListenerBindError
from services.runtime_service import PythonRuntimeSource, RuntimeCounterSource

_log = get_logger(__name__)

_LISTEN_BACKLOG = 2048
_WILDCARD_HOSTS = ("", "0.0.0.0", "::")


# ── App factory ─────────────────────────────────────────────

def create_app(source: Optional[RuntimeCounterSource] = None) -> FastAPI:
    """Build the app around a counter source (the live interpreter by default)."""
    owned: Optional[PythonRuntimeSource] = None
    if source is None:
        owned = PythonRuntimeSource()
        source = owned

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = get_settings()
        setup_logging(level=cfg.log_level, json_output=cfg.log_json)
        if owned is not None:
            owned.monitor.install()
        _log.info("startup_complete", live_source=owned is not None)

        yield  # ← Application runs here

        if owned is not None:
            owned.monitor.uninstall()
        _log.info("shutdown_complete")

    app = FastAPI(
        title="Runtime Snapshot",
        description="Memory and GC counters of this process, with pause percentiles",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.counter_source = source
    app.include_router(snapshot_router)
    return app


app = create_app()


# ── Listener ────────────────────────────────────────────────

def bind_listener(host: str, port: Union[int, str]) -> socket.socket:
    """Open a listening TCP socket or raise ListenerBindError."""
    try:
        port_num = int(port)
    except (TypeError, ValueError) as e:
        raise ListenerBindError(f"invalid listen port {port!r}") from e
    if not 0 <= port_num <= 65535:
        raise ListenerBindError(f"listen port out of range: {port_num}")

    sock: Optional[socket.socket] = None
    if host in _WILDCARD_HOSTS and socket.has_dualstack_ipv6():
        # A wildcard host accepts IPv4 and IPv6 clients on one socket.
        try:
            sock = socket.create_server(
                ("::", port_num),
                family=socket.AF_INET6,
                backlog=_LISTEN_BACKLOG,
                dualstack_ipv6=True,
            )
        except OSError as e:
            if e.errno not in (errno.EAFNOSUPPORT, errno.EADDRNOTAVAIL):
                raise ListenerBindError(f"cannot listen on {host}:{port_num}: {e}") from e
            _log.warning("ipv6_unavailable_listening_ipv4_only", error=str(e))

    if sock is None:
        bind_host = "0.0.0.0" if host in _WILDCARD_HOSTS else host
        try:
            sock = socket.create_server(
                (bind_host, port_num),
                family=socket.AF_INET,
                backlog=_LISTEN_BACKLOG,
            )
        except OSError as e:
            raise ListenerBindError(f"cannot listen on {host}:{port_num}: {e}") from e
    sock.set_inheritable(True)
    return sock


def _build_server(target: FastAPI) -> uvicorn.Server:
    config = uvicorn.Config(
        target,
        log_config=None,   # keep our structlog handlers
        access_log=False,  # we do our own structured logging
    )
    return uvicorn.Server(config)


def start_server(listen_port: Union[int, str, None] = None) -> None:
    """
    Serve the snapshot on all interfaces at listen_port. Blocks until the
    server exits. Raises ListenerBindError if the port can't be bound.
    """
    cfg = get_settings()
    port = cfg.api_port if listen_port is None else listen_port

    sock = bind_listener(cfg.api_host, port)
    host, bound_port = sock.getsockname()[:2]
    _log.info("listener_bound", host=host, port=bound_port)

    _build_server(app).run(sockets=[sock])


@dataclass
class BackgroundServer:
    """Handle for a snapshot server running on a daemon thread."""

    server: uvicorn.Server
    thread: threading.Thread
    port: int

    def stop(self, timeout: float = 5.0) -> None:
        self.server.should_exit = True
        self.thread.join(timeout)


def start_background_server(
    listen_port: Union[int, str, None] = None,
    *,
    target: Optional[FastAPI] = None,
    startup_timeout: float = 5.0,
) -> BackgroundServer:
    """
    Expose the snapshot from inside a host application without blocking it.

    The socket is bound on the calling thread, so ListenerBindError is raised
    here rather than lost on the server thread. Port 0 picks a free port.
    """
    cfg = get_settings()
    port = cfg.api_port if listen_port is None else listen_port

    sock = bind_listener(cfg.api_host, port)
    bound_port = sock.getsockname()[1]
    server = _build_server(target if target is not None else app)

    thread = threading.Thread(
        target=server.run,
        kwargs={"sockets": [sock]},
        name="runtime-snapshot",
        daemon=True,
    )
    thread.start()

    deadline = time.monotonic() + startup_timeout
    while not server.started and thread.is_alive() and time.monotonic() < deadline:
        time.sleep(0.01)

    _log.info("listener_bound", port=bound_port, background=True, started=server.started)
    return BackgroundServer(server=server, thread=thread, port=bound_port)


# ── CLI entry point ─────────────────────────────────────────

def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Serve this process's memory and GC snapshot as JSON over HTTP.",
    )
    parser.add_argument(
        "--port",
        default=None,
        help="Listen port (default: API_PORT from the environment, else 7070)",
    )
    args = parser.parse_args(argv)

    cfg = get_settings()
    setup_logging(level=cfg.log_level, json_output=cfg.log_json)

    try:
        start_server(args.port)
    except ListenerBindError as e:
        _log.critical("listener_bind_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
