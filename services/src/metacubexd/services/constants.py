"""Shared baseline constants for the metacubexd services."""

from __future__ import annotations

from pathlib import Path
from typing import Final

MIHOMO_CONFIG_FILE_PATH: Final[Path] = Path("/opt/mihomo/config.yaml")
MAX_MIHOMO_CONFIG_SIZE_BYTES: Final[int] = 2 * 1024 * 1024

REMOTE_FETCH_USER_AGENT: Final[str] = "metacubexd"
REMOTE_FETCH_TIMEOUT_SECONDS: Final[float] = 30.0

__all__ = [
    "MAX_MIHOMO_CONFIG_SIZE_BYTES",
    "MIHOMO_CONFIG_FILE_PATH",
    "REMOTE_FETCH_TIMEOUT_SECONDS",
    "REMOTE_FETCH_USER_AGENT",
]
