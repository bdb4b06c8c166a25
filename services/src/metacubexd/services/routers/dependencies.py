"""Dependency injection helpers for FastAPI routers."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from ..config import ServiceSettings
from ..persistence import ConfigStore
from ..remote_fetch import RemoteFetcher

__all__ = [
    "get_config_store",
    "get_remote_fetcher",
    "get_settings",
]


def get_settings(request: Request) -> ServiceSettings:
    """Return the service settings configured for the application."""

    return cast(ServiceSettings, request.app.state.settings)


def get_config_store(request: Request) -> ConfigStore:
    """Return the config store stored on the application state."""

    return cast(ConfigStore, request.app.state.config_store)


def get_remote_fetcher(request: Request) -> RemoteFetcher:
    """Return the remote fetcher stored on the application state."""

    return cast(RemoteFetcher, request.app.state.remote_fetcher)
