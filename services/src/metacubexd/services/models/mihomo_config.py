"""Response models for the Mihomo config and remote fetch endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["MihomoConfigResponse", "MihomoConfigWriteResponse", "RemoteContentResponse"]


class MihomoConfigResponse(BaseModel):
    """Current config text and the mtime observed while reading it."""

    model_config = ConfigDict(populate_by_name=True)

    content: str
    mtime_ms: float = Field(alias="mtimeMs")


class MihomoConfigWriteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: Literal[True] = True
    mtime_ms: float = Field(alias="mtimeMs")


class RemoteContentResponse(BaseModel):
    content: str
