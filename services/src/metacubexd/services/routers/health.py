"""Health and diagnostics endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from ..metrics import render

__all__ = ["router", "get_service_version", "health", "metrics_endpoint"]


router = APIRouter(tags=["health"])


_METRICS_MEDIA_TYPE = "text/plain; version=0.0.4"


def get_service_version(request: Request) -> str:
    """Return the service version attached to the application state."""

    return getattr(request.app.state, "service_version", "unknown")


@router.get("/healthz")
async def health(request: Request, version: str = Depends(get_service_version)) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": "ok", "version": version}
    settings = getattr(request.app.state, "settings", None)
    if settings is not None:
        payload["config_path"] = str(settings.mihomo_config_path)
    return payload


@router.get("/metrics")
async def metrics_endpoint(version: str = Depends(get_service_version)) -> Response:
    """Return the Prometheus metrics payload without implicit charsets."""

    metrics_payload = render(version).encode("utf-8")
    response = Response(content=metrics_payload)
    response.headers["Content-Type"] = _METRICS_MEDIA_TYPE
    return response
