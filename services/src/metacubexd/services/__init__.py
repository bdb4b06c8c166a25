"""Backend services for the metacubexd Mihomo dashboard."""

from __future__ import annotations

from .app import SERVICE_VERSION, create_app
from .persistence import (
    ConfigSnapshot,
    ConfigStore,
    ConfigWriteResult,
    read_mihomo_config_file,
    write_mihomo_config_file,
)
from .remote_fetch import RemoteFetcher, fetch_remote_text
from .service_errors import ConfigError, ConfigErrorKind, RemoteFetchError, ServiceError

__all__ = [
    "ConfigError",
    "ConfigErrorKind",
    "ConfigSnapshot",
    "ConfigStore",
    "ConfigWriteResult",
    "RemoteFetchError",
    "RemoteFetcher",
    "SERVICE_VERSION",
    "ServiceError",
    "create_app",
    "fetch_remote_text",
    "read_mihomo_config_file",
    "write_mihomo_config_file",
]
