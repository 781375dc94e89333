"""
Centralized configuration: loaded once at process startup.

Values come from the environment (or .env), case-insensitive:
API_PORT=9090, LOG_JSON=true, and so on.

The pause ring capacity is not a setting. The sampling window is fixed
by the runtime monitor.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Immutable, validated application settings from environment."""

    # ── API ─────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", description="Interface the listener binds to")
    api_port: int = Field(default=7070, description="Port the snapshot endpoint listens on")

    # ── Logging ─────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Render logs as JSON lines instead of console output")

    # ── Snapshot ────────────────────────────────────────────
    include_gc_cpu_fraction: bool = Field(
        default=True,
        description="Export gc_cpu_fraction alongside the raw counters",
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Singleton accessor: parsed once and cached for the process lifetime.
    Import this wherever you need config:
        from configs.settings import get_settings
        cfg = get_settings()
    """
    return Settings()
