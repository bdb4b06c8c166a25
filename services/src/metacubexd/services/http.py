"""HTTP utilities shared across the metacubexd service stack."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final
from uuid import UUID, uuid4

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .models.errors import ErrorResponse
from .service_errors import HTTP_STATUS_CONTENT_TOO_LARGE, ServiceError

LOGGER = logging.getLogger(__name__)

TRACE_ID_HEADER: Final[str] = "x-trace-id"
_TRACE_ID_CONTEXT: ContextVar[str] = ContextVar("metacubexd_trace_id", default="")

DEFAULT_ERROR_RESPONSES: Final[dict[int | str, dict[str, Any]]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    HTTP_STATUS_CONTENT_TOO_LARGE: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
}


def default_error_responses() -> dict[int | str, dict[str, Any]]:
    """Return a copy of the default error response mapping for routers."""

    return {status_code: dict(schema) for status_code, schema in DEFAULT_ERROR_RESPONSES.items()}


def resolve_trace_id(candidate: str | None) -> str:
    """Return a valid UUID string, preferring the provided candidate."""

    if candidate:
        try:
            UUID(candidate)
            return candidate
        except ValueError:
            LOGGER.debug("Ignoring invalid trace identifier: %s", candidate)
    return str(uuid4())


def ensure_trace_id() -> str:
    """Return the active trace identifier, creating one if absent."""

    trace_id = _TRACE_ID_CONTEXT.get()
    if not trace_id:
        trace_id = str(uuid4())
        _TRACE_ID_CONTEXT.set(trace_id)
    return trace_id


def get_trace_context() -> ContextVar[str]:
    """Expose the trace identifier context variable for middleware use."""

    return _TRACE_ID_CONTEXT


def build_error_payload(
    *, code: str, message: str, details: dict[str, Any], trace_id: str
) -> ErrorResponse:
    """Construct the shared error payload."""

    return ErrorResponse(code=code, message=message, details=details, trace_id=trace_id)


def _error_response(status_code: int, payload: ErrorResponse, trace_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(payload.model_dump()),
        headers={TRACE_ID_HEADER: trace_id},
    )


def service_error_response(exc: ServiceError, trace_id: str) -> JSONResponse:
    """Render a :class:`ServiceError` (including config errors) as JSON."""

    payload = ErrorResponse.from_service_error(exc, trace_id)
    return _error_response(exc.status_code, payload, trace_id)


def http_exception_to_response(exc: HTTPException, trace_id: str) -> JSONResponse:
    """Translate an ``HTTPException`` into a JSON response with trace headers."""

    headers = dict(exc.headers or {})
    headers.setdefault(TRACE_ID_HEADER, trace_id)

    detail = exc.detail
    if isinstance(detail, dict):
        payload_data = dict(detail)
        payload_data.setdefault("code", "INTERNAL")
        payload_data.setdefault("message", "Internal server error.")
        payload_data.setdefault("details", {})
        payload_data["trace_id"] = trace_id
        payload = ErrorResponse.model_validate(payload_data)
    else:
        payload = ErrorResponse(
            code="HTTP_ERROR" if exc.status_code < 500 else "INTERNAL",
            message=str(detail) or "HTTP error.",
            details={},
            trace_id=trace_id,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(payload.model_dump()),
        headers=headers,
    )


def request_validation_response(exc: RequestValidationError, trace_id: str) -> JSONResponse:
    """Render request validation failures using the shared error model."""

    payload = build_error_payload(
        code="VALIDATION",
        message="Request validation failed.",
        details={"errors": jsonable_encoder(exc.errors())},
        trace_id=trace_id,
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, payload, trace_id)


def internal_error_response(trace_id: str) -> JSONResponse:
    """Generate a generic internal error response with trace context."""

    payload = build_error_payload(
        code="INTERNAL",
        message="Internal server error.",
        details={},
        trace_id=trace_id,
    )
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, payload, trace_id)


__all__: list[str] = [
    "DEFAULT_ERROR_RESPONSES",
    "TRACE_ID_HEADER",
    "build_error_payload",
    "default_error_responses",
    "ensure_trace_id",
    "get_trace_context",
    "http_exception_to_response",
    "internal_error_response",
    "request_validation_response",
    "resolve_trace_id",
    "service_error_response",
]
