"""JSON envelope returned by every failing metacubexd endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from ..service_errors import ServiceError

__all__ = ["ErrorResponse"]


class ErrorResponse(BaseModel):
    """Error body; ``trace_id`` repeats the ``x-trace-id`` response header."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "code": "NOT_FOUND",
                    "message": "Mihomo config file not found",
                    "details": {"action": "read", "errno": 2},
                    "trace_id": "1b4e28ba-2fa1-11d2-883f-0016d3cca427",
                }
            ]
        },
    )

    code: str = Field(min_length=1, description="Stable machine-readable error code, e.g. CONTENT_TOO_LARGE.")
    message: str = Field(min_length=1, description="Human-readable message shown by the dashboard.")
    details: dict[str, Any] = Field(default_factory=dict)
    trace_id: str = Field(min_length=1)

    @classmethod
    def from_service_error(cls, exc: "ServiceError", trace_id: str) -> "ErrorResponse":
        return cls(code=exc.code, message=exc.message, details=exc.details, trace_id=trace_id)
