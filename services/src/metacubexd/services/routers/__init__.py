"""Router package exports."""

from __future__ import annotations

from .api import router as api_router
from .fetch_remote import router as fetch_remote_router
from .health import router as health_router
from .mihomo_config import router as mihomo_config_router

__all__ = [
    "api_router",
    "fetch_remote_router",
    "health_router",
    "mihomo_config_router",
]
