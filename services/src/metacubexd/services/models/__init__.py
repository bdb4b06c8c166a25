"""Pydantic models exposed by the service HTTP layer."""

from __future__ import annotations

from .errors import ErrorResponse
from .mihomo_config import MihomoConfigResponse, MihomoConfigWriteResponse, RemoteContentResponse

__all__ = [
    "ErrorResponse",
    "MihomoConfigResponse",
    "MihomoConfigWriteResponse",
    "RemoteContentResponse",
]
