"""Settings for the RPC server and its HTTP adapter, read from GENERPC_* environment variables."""

from __future__ import annotations

import sys
import threading
from typing import Any

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """generpc configuration."""

    rpc_path: str = "/rpc"
    host: str = "127.0.0.1"
    port: int = Field(default=8765, ge=0, le=65535)
    log_level: str = "INFO"
    # Put the (sanitized) exception message into Internal error responses.
    expose_internal_errors: bool = True

    model_config = SettingsConfigDict(env_prefix="GENERPC_")


_lock = threading.RLock()
_cache: dict[str, Settings] = {}
_SINK_IDS: dict[str, int] = {}


def get_settings(*, force_reload: bool = False) -> Settings:
    """Get settings with process-local cache and optional refresh."""
    with _lock:
        if force_reload or "settings" not in _cache:
            _cache["settings"] = Settings()
        return _cache["settings"]


def clear_settings_cache() -> None:
    with _lock:
        _cache.clear()


def configure_logging(settings: Settings | None = None, sink: Any = None) -> int:
    """
    Add a loguru sink at the configured level. Library code never adds sinks
    on its own; applications call this once at startup.
    """
    settings = settings or get_settings()
    key = f"{id(sink)}:{settings.log_level}"
    with _lock:
        if key in _SINK_IDS:
            return _SINK_IDS[key]
        sink_id = logger.add(
            sink if sink is not None else sys.stderr,
            level=settings.log_level.upper(),
            backtrace=False,
            diagnose=False,
        )
        _SINK_IDS[key] = sink_id
        return sink_id
