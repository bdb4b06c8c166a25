"""Size-bounded retrieval of remote config text."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .constants import (
    MAX_MIHOMO_CONFIG_SIZE_BYTES,
    REMOTE_FETCH_TIMEOUT_SECONDS,
    REMOTE_FETCH_USER_AGENT,
)
from .service_errors import RemoteFetchError

LOGGER = logging.getLogger(__name__)

_ALLOWED_PREFIXES = ("http://", "https://")


def _validate_url(url: object) -> str:
    if not url or not isinstance(url, str):
        raise RemoteFetchError.from_code(
            "VALIDATION",
            message="Missing required query parameter: url",
        )
    if not url.startswith(_ALLOWED_PREFIXES):
        raise RemoteFetchError.from_code(
            "VALIDATION",
            message="URL must start with http:// or https://",
        )
    return url


def _parse_content_length(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RemoteFetcher:
    """Fetch remote text, rejecting payloads above ``max_bytes``.

    The limit is enforced three times: against a declared ``Content-Length``,
    while streaming the body, and on the UTF-8 size of the decoded text.
    """

    def __init__(
        self,
        *,
        max_bytes: int = MAX_MIHOMO_CONFIG_SIZE_BYTES,
        user_agent: str = REMOTE_FETCH_USER_AGENT,
        timeout_seconds: float = REMOTE_FETCH_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be greater than zero.")
        self.max_bytes = max_bytes
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _too_large(self, **details: Any) -> RemoteFetchError:
        return RemoteFetchError.from_code(
            "CONTENT_TOO_LARGE",
            message=f"Remote file exceeds {self.max_bytes} bytes limit",
            details={"limit_bytes": self.max_bytes, **details},
        )

    async def _read_limited(self, response: httpx.Response) -> bytes:
        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            buffer.extend(chunk)
            if len(buffer) > self.max_bytes:
                raise self._too_large(received_bytes=len(buffer))
        return bytes(buffer)

    async def fetch_text(self, url: object) -> str:
        """Return the body of ``url`` decoded as text."""

        target = _validate_url(url)
        LOGGER.info("Fetching remote config", extra={"extra_payload": {"url": target}})

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=httpx.Timeout(self.timeout_seconds),
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            ) as client:
                async with client.stream("GET", target) as response:
                    if not response.is_success:
                        raise RemoteFetchError.from_code(
                            "REMOTE_HTTP_ERROR",
                            status_code=response.status_code,
                            message=f"Remote server responded with {response.status_code}",
                            details={"upstream_status": response.status_code},
                        )

                    declared = _parse_content_length(response.headers.get("content-length"))
                    if declared is not None and declared > self.max_bytes:
                        raise self._too_large(declared_bytes=declared)

                    body = await self._read_limited(response)
        except RemoteFetchError:
            raise
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.warning(
                "Remote fetch failed",
                extra={"extra_payload": {"url": target, "error": str(exc)}},
            )
            raise RemoteFetchError.from_code(
                "REMOTE_FETCH_FAILED",
                message=f"Failed to fetch from remote URL: {exc}",
                details={"error": exc.__class__.__name__},
            ) from exc

        # Always UTF-8, whatever charset the upstream declares.
        content = body.decode("utf-8", errors="replace")

        size = len(content.encode("utf-8"))
        if size > self.max_bytes:
            raise self._too_large(size_bytes=size)
        return content


async def fetch_remote_text(url: object, **options: Any) -> str:
    """Fetch ``url`` with a one-off :class:`RemoteFetcher`."""

    return await RemoteFetcher(**options).fetch_text(url)


__all__ = ["RemoteFetcher", "fetch_remote_text"]
