"""Aggregate router mounted under ``/api``."""

from __future__ import annotations

from fastapi import APIRouter

from .fetch_remote import router as fetch_remote_router
from .health import router as health_router
from .mihomo_config import router as mihomo_config_router

router = APIRouter(prefix="/api")
router.include_router(health_router)
router.include_router(mihomo_config_router)
router.include_router(fetch_remote_router)

__all__ = ["router"]
