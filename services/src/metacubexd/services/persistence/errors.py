"""Translate filesystem failures into config store errors."""

from __future__ import annotations

import errno
from typing import Literal

from ..service_errors import ConfigError, ConfigErrorKind

FileAction = Literal["read", "write"]

_ERRNO_KINDS: dict[int, ConfigErrorKind] = {
    errno.ENOENT: ConfigErrorKind.NOT_FOUND,
    errno.EACCES: ConfigErrorKind.PERMISSION_DENIED,
    errno.EPERM: ConfigErrorKind.PERMISSION_DENIED,
}


def _kind_for(exc: OSError) -> ConfigErrorKind:
    if isinstance(exc, FileNotFoundError):
        return ConfigErrorKind.NOT_FOUND
    errno_value = getattr(exc, "errno", None)
    if errno_value in _ERRNO_KINDS:
        return _ERRNO_KINDS[errno_value]
    if isinstance(exc, PermissionError):
        return ConfigErrorKind.PERMISSION_DENIED
    return ConfigErrorKind.IO_ERROR


def _message_for(kind: ConfigErrorKind, action: FileAction) -> str:
    if kind is ConfigErrorKind.NOT_FOUND:
        return "Mihomo config file not found"
    if kind is ConfigErrorKind.PERMISSION_DENIED:
        return f"Permission denied while trying to {action} Mihomo config file"
    return f"Failed to {action} Mihomo config file"


def classify_filesystem_error(exc: OSError, action: FileAction) -> ConfigError:
    """Map ``exc`` onto the config error taxonomy.

    ``action`` only affects the message wording; the same failure always maps
    to the same kind.
    """

    kind = _kind_for(exc)
    return ConfigError(
        kind,
        _message_for(kind, action),
        details={
            "action": action,
            "errno": getattr(exc, "errno", None),
            "error": exc.strerror or str(exc),
        },
    )


__all__ = ["FileAction", "classify_filesystem_error"]
