"""Convenience exports for persistence helpers."""

from __future__ import annotations

from .atomic import write_bytes_atomic
from .config_store import (
    ConfigSnapshot,
    ConfigStore,
    ConfigWriteResult,
    read_mihomo_config_file,
    write_mihomo_config_file,
)
from .errors import classify_filesystem_error

__all__ = [
    "ConfigSnapshot",
    "ConfigStore",
    "ConfigWriteResult",
    "classify_filesystem_error",
    "read_mihomo_config_file",
    "write_bytes_atomic",
    "write_mihomo_config_file",
]
