"""Structured logging helpers for metacubexd services."""

from __future__ import annotations

import json
import logging
import logging.config
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

_SECRET_KEY_NAMES = {
    "api_key",
    "apikey",
    "auth",
    "authorization",
    "password",
    "secret",
    "token",
}
# Subscription URLs usually carry their token in the query string.
_URL_QUERY_RE = re.compile(r"(https?://[^\s?#]+)[?#]\S*")


def _scrub_value(value: Any, *, key: str | None = None) -> Any:
    if isinstance(value, Mapping):
        return {inner_key: _scrub_value(inner_value, key=str(inner_key)) for inner_key, inner_value in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub_value(item, key=key) for item in value]
    if isinstance(value, str):
        if key and key.lower() in _SECRET_KEY_NAMES:
            return "[REDACTED]"
        return _URL_QUERY_RE.sub(r"\1?[REDACTED]", value)
    return value


def scrub_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``payload`` with secrets and URL queries removed."""

    return {str(key): _scrub_value(value, key=str(key)) for key, value in payload.items()}


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_payload", None)
        if isinstance(extra, dict):
            payload.update(scrub_payload(extra))
        return json.dumps(payload, ensure_ascii=False, default=str)


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "metacubexd.services.logging_config.JsonFormatter",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        }
    },
    "loggers": {
        "uvicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "metacubexd.services": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}


def configure_logging(level: str | int | None = None) -> None:
    """Apply the structured logging configuration."""

    logging.config.dictConfig(LOGGING_CONFIG)
    if level is not None:
        logging.getLogger("metacubexd.services").setLevel(level)


__all__ = ["JsonFormatter", "LOGGING_CONFIG", "configure_logging", "scrub_payload"]
