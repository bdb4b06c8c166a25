"""Read and replace the Mihomo configuration file over HTTP."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool

from ..metrics import record_config_write
from ..models import MihomoConfigResponse, MihomoConfigWriteResponse
from ..persistence import ConfigStore
from ..service_errors import ConfigError, ConfigErrorKind
from .dependencies import get_config_store

router = APIRouter(prefix="/mihomo-config", tags=["mihomo-config"])


@router.get("", response_model=MihomoConfigResponse)
async def read_mihomo_config(
    store: ConfigStore = Depends(get_config_store),
) -> MihomoConfigResponse:
    snapshot = await run_in_threadpool(store.read)
    return MihomoConfigResponse(content=snapshot.content, mtime_ms=snapshot.mtime_ms)


@router.put("", response_model=MihomoConfigWriteResponse)
async def write_mihomo_config(
    payload: Any = Body(default=None),
    store: ConfigStore = Depends(get_config_store),
) -> MihomoConfigWriteResponse:
    """Replace the config file with ``payload["content"]``."""

    try:
        content = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(content, str):
            raise ConfigError(ConfigErrorKind.INVALID_CONTENT, "`content` must be a string")
        result = await run_in_threadpool(store.write, content)
    except ConfigError as exc:
        record_config_write(exc.code)
        raise

    record_config_write("ok")
    return MihomoConfigWriteResponse(mtime_ms=result.mtime_ms)


__all__ = ["read_mihomo_config", "router", "write_mihomo_config"]
