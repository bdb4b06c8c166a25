"""Atomic file replacement used by the config store."""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import IO, Any
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

_TRANSIENT_WINERRORS = {5, 32}


def temp_path_for(target: Path) -> Path:
    """Return a unique hidden sibling path for staging writes to ``target``."""

    suffix = f"{os.getpid()}.{time.time_ns()}.{uuid4().hex[:8]}"
    return target.parent / f".{target.name}.{suffix}.tmp"


def flush_handle(handle: IO[Any], *, durable: bool) -> None:
    """Flush file buffers and optionally fsync for durability."""

    handle.flush()
    if durable:
        os.fsync(handle.fileno())


def replace_file(
    temp_path: Path,
    target_path: Path,
    *,
    attempts: int = 5,
    delay: float = 0.05,
) -> None:
    """Atomically replace ``target_path`` with retry support on Windows."""

    for attempt in range(attempts):
        try:
            os.replace(temp_path, target_path)
            return
        except OSError as exc:
            winerror = getattr(exc, "winerror", None)
            if winerror not in _TRANSIENT_WINERRORS or attempt == attempts - 1:
                raise
            time.sleep(delay * (attempt + 1))


def write_bytes_atomic(
    path: Path,
    data: bytes,
    *,
    durable: bool = True,
    mode: int | None = None,
) -> None:
    """Replace ``path`` with ``data`` so readers only see old or new bytes.

    The payload is staged in a sibling temp file and renamed over the target.
    The temp file is removed on every exit path; cleanup failures are ignored
    so they never hide the outcome of the write itself.
    """

    temp_path = temp_path_for(path)
    try:
        with temp_path.open("wb") as handle:
            handle.write(data)
            flush_handle(handle, durable=durable)
        if mode is not None:
            os.chmod(temp_path, mode)
        replace_file(temp_path, path)
    finally:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.debug("Could not remove temp file %s: %s", temp_path, exc)


__all__ = [
    "flush_handle",
    "replace_file",
    "temp_path_for",
    "write_bytes_atomic",
]
