"""ASGI middleware guarding the metacubexd request bodies."""

from __future__ import annotations

import logging

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .http import TRACE_ID_HEADER, build_error_payload, ensure_trace_id
from .service_errors import HTTP_STATUS_CONTENT_TOO_LARGE

LOGGER = logging.getLogger(__name__)

_DISCONNECT: Message = {"type": "http.disconnect"}


class _BodyBudget:
    """Per-request accounting for one streamed request body."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.consumed = 0
        self.exceeded = False
        self.response_started = False

    def charge(self, message: Message) -> bool:
        """Count an ``http.request`` chunk; return True once over the limit."""

        self.consumed += len(message.get("body", b""))
        if self.consumed > self.limit:
            self.exceeded = True
        return self.exceeded


class BodySizeLimitMiddleware:
    """Answer 413 for request bodies larger than ``limit`` bytes.

    A declared ``Content-Length`` is checked before the app runs. Bodies
    without one (chunked uploads) are counted as they stream; once the
    budget is spent the 413 is sent, the app sees ``http.disconnect`` and
    anything it still tries to send is discarded so the request carries
    exactly one response.
    """

    def __init__(self, app: ASGIApp, *, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be greater than zero.")
        self.app = app
        self._limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = _declared_length(Headers(scope=scope))
        if declared is not None and declared > self._limit:
            LOGGER.info(
                "Rejected request body",
                extra={"extra_payload": {"declared_bytes": declared, "limit_bytes": self._limit}},
            )
            await self._reject(scope, receive, send)
            return

        budget = _BodyBudget(self._limit)

        async def limited_receive() -> Message:
            if budget.exceeded:
                return _DISCONNECT
            message = await receive()
            if message["type"] != "http.request" or not budget.charge(message):
                return message
            LOGGER.info(
                "Rejected streamed request body",
                extra={"extra_payload": {"received_bytes": budget.consumed, "limit_bytes": self._limit}},
            )
            if not budget.response_started:
                budget.response_started = True
                await self._reject(scope, receive, send)
            return _DISCONNECT

        async def guarded_send(message: Message) -> None:
            if budget.exceeded:
                return
            if message["type"] == "http.response.start":
                budget.response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except Exception:
            if not budget.exceeded:
                raise
            LOGGER.debug("Ignoring app error after oversized body was rejected", exc_info=True)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        trace_id = ensure_trace_id()
        payload = build_error_payload(
            code="PAYLOAD_TOO_LARGE",
            message="Request payload exceeds allowed size.",
            details={"limit_bytes": self._limit},
            trace_id=trace_id,
        )
        response = JSONResponse(
            status_code=HTTP_STATUS_CONTENT_TOO_LARGE,
            content=payload.model_dump(),
            headers={TRACE_ID_HEADER: trace_id},
        )
        await response(scope, receive, send)


def _declared_length(headers: Headers) -> int | None:
    value = headers.get("content-length")
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


__all__ = ["BodySizeLimitMiddleware"]
