"""Read and atomically replace the Mihomo YAML configuration file."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path

from ..constants import MAX_MIHOMO_CONFIG_SIZE_BYTES, MIHOMO_CONFIG_FILE_PATH
from ..service_errors import ConfigError, ConfigErrorKind
from .atomic import write_bytes_atomic
from .errors import classify_filesystem_error

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigSnapshot:
    """Config file content paired with the mtime observed while reading it."""

    content: str
    mtime_ms: float


@dataclass(frozen=True)
class ConfigWriteResult:
    mtime_ms: float


def _mtime_ms(stat_result: os.stat_result) -> float:
    return stat_result.st_mtime_ns / 1_000_000


class ConfigStore:
    """Filesystem-backed access to a single config file.

    Nothing is cached between calls: every read and write goes back to disk.
    Content is treated as opaque text and is never parsed. Concurrent writers
    are not serialised, so the last rename to land wins.
    """

    def __init__(
        self,
        path: Path | str = MIHOMO_CONFIG_FILE_PATH,
        *,
        max_bytes: int = MAX_MIHOMO_CONFIG_SIZE_BYTES,
        durable: bool = True,
    ) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be greater than zero.")
        self.path = Path(path)
        self.max_bytes = max_bytes
        self.durable = durable

    def _target(self, path: Path | str | None) -> Path:
        return Path(path) if path is not None else self.path

    def read(self, path: Path | str | None = None) -> ConfigSnapshot:
        """Return the file content and its modification time in milliseconds."""

        target = self._target(path)
        try:
            with target.open("rb") as handle:
                raw = handle.read()
                stat_result = os.fstat(handle.fileno())
        except OSError as exc:
            error = classify_filesystem_error(exc, "read")
            LOGGER.warning("Config read failed for %s: %s (%s)", target, error.code, exc)
            raise error from exc

        return ConfigSnapshot(
            content=raw.decode("utf-8", errors="replace"),
            mtime_ms=_mtime_ms(stat_result),
        )

    def encode(self, content: object) -> bytes:
        """Validate ``content`` and return its UTF-8 encoding.

        Raises ``INVALID_CONTENT`` for non-text values and ``CONTENT_TOO_LARGE``
        when the encoded size exceeds ``max_bytes``.
        """

        if not isinstance(content, str):
            raise ConfigError(
                ConfigErrorKind.INVALID_CONTENT,
                "`content` must be a string",
                details={"type": type(content).__name__},
            )
        try:
            data = content.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ConfigError(
                ConfigErrorKind.INVALID_CONTENT,
                "`content` must be valid UTF-8 text",
                details={"position": exc.start},
            ) from exc

        if len(data) > self.max_bytes:
            raise ConfigError(
                ConfigErrorKind.CONTENT_TOO_LARGE,
                f"Config content exceeds {self.max_bytes} bytes",
                details={"limit_bytes": self.max_bytes, "size_bytes": len(data)},
            )
        return data

    def write(self, content: object, path: Path | str | None = None) -> ConfigWriteResult:
        """Atomically replace the file with ``content`` and return the new mtime.

        Validation happens before the filesystem is touched. A symlinked target
        is resolved so the link itself is preserved, and the existing file mode
        is carried over to the replacement.
        """

        data = self.encode(content)
        target = Path(os.path.realpath(self._target(path)))

        try:
            mode = _existing_mode(target)
            write_bytes_atomic(target, data, durable=self.durable, mode=mode)
            stat_result = target.stat()
        except OSError as exc:
            error = classify_filesystem_error(exc, "write")
            LOGGER.warning("Config write failed for %s: %s (%s)", target, error.code, exc)
            raise error from exc

        LOGGER.info("Wrote %d bytes to %s", len(data), target)
        return ConfigWriteResult(mtime_ms=_mtime_ms(stat_result))


def _existing_mode(target: Path) -> int | None:
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        return None


def read_mihomo_config_file(path: Path | str = MIHOMO_CONFIG_FILE_PATH) -> ConfigSnapshot:
    """Read the Mihomo config file at ``path``."""

    return ConfigStore(path).read()


def write_mihomo_config_file(
    content: object,
    path: Path | str = MIHOMO_CONFIG_FILE_PATH,
) -> ConfigWriteResult:
    """Atomically write ``content`` to the Mihomo config file at ``path``."""

    return ConfigStore(path).write(content)


__all__ = [
    "ConfigSnapshot",
    "ConfigStore",
    "ConfigWriteResult",
    "read_mihomo_config_file",
    "write_mihomo_config_file",
]
