"""Proxy remote config downloads for the dashboard import flow."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..models import RemoteContentResponse
from ..remote_fetch import RemoteFetcher
from .dependencies import get_remote_fetcher

router = APIRouter(prefix="/fetch-remote", tags=["remote"])


@router.get("", response_model=RemoteContentResponse)
async def fetch_remote(
    url: str | None = Query(default=None),
    fetcher: RemoteFetcher = Depends(get_remote_fetcher),
) -> RemoteContentResponse:
    content = await fetcher.fetch_text(url)
    return RemoteContentResponse(content=content)


__all__ = ["fetch_remote", "router"]
