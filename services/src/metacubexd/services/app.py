"""FastAPI application factory for the metacubexd services."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Final

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import MutableHeaders
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .config import ServiceSettings
from .http import (
    TRACE_ID_HEADER,
    default_error_responses,
    ensure_trace_id,
    get_trace_context,
    http_exception_to_response,
    internal_error_response,
    request_validation_response,
    resolve_trace_id,
    service_error_response,
)
from .metrics import record_request
from .middleware import BodySizeLimitMiddleware
from .persistence import ConfigStore
from .remote_fetch import RemoteFetcher
from .routers import api_router
from .service_errors import ServiceError

LOGGER = logging.getLogger(__name__)

SERVICE_VERSION: Final[str] = "1.0.0"


class TraceMiddleware:
    """ASGI middleware that applies trace IDs and unified error handling."""

    def __init__(self, app: ASGIApp, *, trace_context: ContextVar[str]) -> None:
        self.app = app
        self._trace_context = trace_context

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        trace_id = resolve_trace_id(request.headers.get(TRACE_ID_HEADER))
        token = self._trace_context.set(trace_id)
        scope.setdefault("state", {})
        scope["state"]["trace_id"] = trace_id  # type: ignore[index]

        status_holder: dict[str, int | None] = {"status": None}

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.setdefault(TRACE_ID_HEADER, trace_id)
                status_holder["status"] = message.get("status")
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except HTTPException as exc:
            response = http_exception_to_response(exc, trace_id)
            status_holder["status"] = exc.status_code
            await response(scope, receive, send)
        except RequestValidationError as exc:
            response = request_validation_response(exc, trace_id)
            status_holder["status"] = status.HTTP_400_BAD_REQUEST
            await response(scope, receive, send)
        except ServiceError as exc:
            response = service_error_response(exc, trace_id)
            status_holder["status"] = exc.status_code
            await response(scope, receive, send)
        except Exception as exc:
            LOGGER.exception(
                "Unhandled error processing %s %s",
                request.method,
                request.url.path,
                exc_info=exc,
            )
            response = internal_error_response(trace_id)
            status_holder["status"] = status.HTTP_500_INTERNAL_SERVER_ERROR
            await response(scope, receive, send)
        finally:
            self._trace_context.reset(token)
            status_code = status_holder["status"] or status.HTTP_500_INTERNAL_SERVER_ERROR
            record_request(request.method, status_code)


def create_app(settings: ServiceSettings | None = None) -> FastAPI:
    """Construct the FastAPI application."""

    service_settings = settings or ServiceSettings.from_environment()

    application = FastAPI(
        title="metacubexd Services",
        version=SERVICE_VERSION,
        responses=default_error_responses(),
    )
    application.state.settings = service_settings
    application.state.service_version = SERVICE_VERSION
    application.state.config_store = ConfigStore(
        service_settings.mihomo_config_path,
        durable=service_settings.durable_writes,
    )
    application.state.remote_fetcher = RemoteFetcher(
        user_agent=service_settings.remote_fetch_user_agent,
        timeout_seconds=service_settings.remote_fetch_timeout_seconds,
    )

    async def http_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, HTTPException):
            return http_exception_to_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def validation_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, RequestValidationError):
            return request_validation_response(exc, trace_id)
        return internal_error_response(trace_id)

    async def service_exception_handler(_: Request, exc: Exception) -> Response:
        trace_id = ensure_trace_id()
        if isinstance(exc, ServiceError):
            return service_error_response(exc, trace_id)
        return internal_error_response(trace_id)

    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(ServiceError, service_exception_handler)

    application.add_middleware(
        BodySizeLimitMiddleware,
        limit=service_settings.max_request_body_bytes,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_origin_regex=service_settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_middleware(
        TraceMiddleware,
        trace_context=get_trace_context(),
    )

    application.include_router(api_router)

    @application.get("/", include_in_schema=False)
    async def service_index(request: Request) -> dict[str, str]:
        """Return a lightweight service manifest for manual checks."""

        version = getattr(request.app.state, "service_version", SERVICE_VERSION)
        return {
            "service": "metacubexd",
            "version": version,
            "api_base": "/api",
        }

    LOGGER.info("Serving Mihomo config from %s", service_settings.mihomo_config_path)
    return application


__all__ = ["SERVICE_VERSION", "TraceMiddleware", "create_app"]
