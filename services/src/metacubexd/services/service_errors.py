"""Central service error definitions and helper exception types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from fastapi import status

# Starlette renamed the 413 constant; fall back for older releases.
HTTP_STATUS_CONTENT_TOO_LARGE: int = getattr(status, "HTTP_413_CONTENT_TOO_LARGE", 413)


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


ERROR_DEFINITIONS: Dict[str, ErrorDefinition] = {
    "INTERNAL": ErrorDefinition("INTERNAL", "Internal server error.", status.HTTP_500_INTERNAL_SERVER_ERROR),
    "VALIDATION": ErrorDefinition("VALIDATION", "Validation failed.", status.HTTP_400_BAD_REQUEST),
    "PAYLOAD_TOO_LARGE": ErrorDefinition(
        "PAYLOAD_TOO_LARGE", "Request payload exceeds allowed size.", HTTP_STATUS_CONTENT_TOO_LARGE
    ),
    "NOT_FOUND": ErrorDefinition("NOT_FOUND", "Mihomo config file not found", status.HTTP_404_NOT_FOUND),
    "PERMISSION_DENIED": ErrorDefinition(
        "PERMISSION_DENIED", "Permission denied while accessing Mihomo config file", status.HTTP_403_FORBIDDEN
    ),
    "INVALID_CONTENT": ErrorDefinition("INVALID_CONTENT", "`content` must be a string", status.HTTP_400_BAD_REQUEST),
    "CONTENT_TOO_LARGE": ErrorDefinition(
        "CONTENT_TOO_LARGE", "Content exceeds the allowed size", HTTP_STATUS_CONTENT_TOO_LARGE
    ),
    "IO_ERROR": ErrorDefinition(
        "IO_ERROR", "Failed to access Mihomo config file", status.HTTP_500_INTERNAL_SERVER_ERROR
    ),
    "REMOTE_HTTP_ERROR": ErrorDefinition(
        "REMOTE_HTTP_ERROR", "Remote server returned an error response.", status.HTTP_502_BAD_GATEWAY
    ),
    "REMOTE_FETCH_FAILED": ErrorDefinition(
        "REMOTE_FETCH_FAILED", "Failed to fetch from remote URL.", status.HTTP_502_BAD_GATEWAY
    ),
}

DEFAULT_ERROR_DEFINITION = ErrorDefinition(
    "UNEXPECTED_ERROR",
    "Unexpected error occurred.",
    status.HTTP_500_INTERNAL_SERVER_ERROR,
)


class ServiceError(Exception):
    """Structured error for router responses."""

    def __init__(
        self,
        *,
        code: str,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    @classmethod
    def from_code(
        cls,
        code: str,
        *,
        message: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> "ServiceError":
        """Build an error from the shared definition table."""

        definition = ERROR_DEFINITIONS.get(code, DEFAULT_ERROR_DEFINITION)
        return cls(
            code=code,
            status_code=status_code or definition.status_code,
            message=message or definition.message,
            details=details,
        )


class ConfigErrorKind(str, Enum):
    """Closed set of failures surfaced by the config store."""

    NOT_FOUND = "NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INVALID_CONTENT = "INVALID_CONTENT"
    CONTENT_TOO_LARGE = "CONTENT_TOO_LARGE"
    IO_ERROR = "IO_ERROR"

    @property
    def definition(self) -> ErrorDefinition:
        return ERROR_DEFINITIONS[self.value]

    @property
    def status_code(self) -> int:
        return self.definition.status_code


class ConfigError(ServiceError):
    """Failure reading or writing the Mihomo config file."""

    def __init__(
        self,
        kind: ConfigErrorKind,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code=kind.value,
            status_code=kind.status_code,
            message=message or kind.definition.message,
            details=details,
        )
        self.kind = kind

    @classmethod
    def from_code(
        cls,
        code: str,
        *,
        message: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> "ConfigError":
        """Build a config error from its kind name; the status is fixed per kind."""

        kind = ConfigErrorKind(code)
        if status_code is not None and status_code != kind.status_code:
            raise ValueError(f"{kind.value} always maps to HTTP {kind.status_code}, not {status_code}")
        return cls(kind, message, details=details)

    def __repr__(self) -> str:
        return f"ConfigError(kind={self.kind.value!r}, status_code={self.status_code}, message={self.message!r})"


class RemoteFetchError(ServiceError):
    """Failure fetching remote text for import."""


__all__ = [
    "DEFAULT_ERROR_DEFINITION",
    "ERROR_DEFINITIONS",
    "HTTP_STATUS_CONTENT_TOO_LARGE",
    "ConfigError",
    "ConfigErrorKind",
    "ErrorDefinition",
    "RemoteFetchError",
    "ServiceError",
]
