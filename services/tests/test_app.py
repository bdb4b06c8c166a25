"""Tests for the metacubexd FastAPI application."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from uuid import UUID

import pytest

try:
    from fastapi import status
    from fastapi.testclient import TestClient
except ModuleNotFoundError as exc:  # pragma: no cover - environment dependent
    pytest.skip(f"fastapi is required for service tests: {exc}", allow_module_level=True)

from metacubexd.services.app import SERVICE_VERSION
from metacubexd.services.constants import MAX_MIHOMO_CONFIG_SIZE_BYTES
from metacubexd.services.persistence import ConfigStore
from metacubexd.services.remote_fetch import RemoteFetcher
from metacubexd.services.routers.dependencies import get_config_store, get_remote_fetcher

TRACE_HEADER = "x-trace-id"
API_PREFIX = "/api"
CONFIG_URL = f"{API_PREFIX}/mihomo-config"


def _assert_trace_header(response: Any) -> str:
    """Ensure the response includes a valid trace identifier header."""

    trace_id = response.headers.get(TRACE_HEADER)
    assert trace_id is not None
    UUID(trace_id)
    return trace_id


def _read_error(response: Any) -> dict[str, object]:
    """Return the structured error payload with validated trace metadata."""

    payload = response.json()
    trace_id = _assert_trace_header(response)
    assert payload["trace_id"] == trace_id
    assert set(payload) == {"code", "message", "details", "trace_id"}
    return payload


def test_service_index_reports_manifest(test_client: TestClient) -> None:
    response = test_client.get("/")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"service": "metacubexd", "version": SERVICE_VERSION, "api_base": "/api"}
    _assert_trace_header(response)


def test_health_reports_config_path(test_client: TestClient, config_path: Path) -> None:
    response = test_client.get(f"{API_PREFIX}/healthz")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "ok",
        "version": SERVICE_VERSION,
        "config_path": str(config_path),
    }


def test_read_config_returns_content_and_mtime(test_client: TestClient, config_path: Path) -> None:
    config_path.write_text("mixed-port: 7890\n", encoding="utf-8")

    response = test_client.get(CONFIG_URL)

    assert response.status_code == status.HTTP_200_OK
    payload = response.json()
    assert payload["content"] == "mixed-port: 7890\n"
    assert payload["mtimeMs"] == pytest.approx(config_path.stat().st_mtime_ns / 1_000_000)


def test_read_missing_config_returns_not_found(test_client: TestClient) -> None:
    response = test_client.get(CONFIG_URL)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    payload = _read_error(response)
    assert payload["code"] == "NOT_FOUND"
    assert payload["message"] == "Mihomo config file not found"


def test_write_then_read_round_trip(test_client: TestClient, config_path: Path) -> None:
    config_path.write_text("port: 7890\n", encoding="utf-8")
    before_ms = config_path.stat().st_mtime_ns / 1_000_000

    write_response = test_client.put(CONFIG_URL, json={"content": "port: 7891\n"})

    assert write_response.status_code == status.HTTP_200_OK
    write_payload = write_response.json()
    assert write_payload["ok"] is True
    assert write_payload["mtimeMs"] >= before_ms

    read_response = test_client.get(CONFIG_URL)
    assert read_response.json()["content"] == "port: 7891\n"
    assert config_path.read_text(encoding="utf-8") == "port: 7891\n"


def test_write_creates_missing_config(test_client: TestClient, config_path: Path) -> None:
    response = test_client.put(CONFIG_URL, json={"content": "proxies: []\n"})

    assert response.status_code == status.HTTP_200_OK
    assert config_path.read_text(encoding="utf-8") == "proxies: []\n"


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"content": 7891},
        {"content": None},
        {"content": ["port: 7891"]},
        ["port: 7891"],
        "port: 7891",
    ],
)
def test_write_rejects_non_string_content(
    test_client: TestClient, config_path: Path, body: object
) -> None:
    config_path.write_text("port: 7890\n", encoding="utf-8")

    response = test_client.put(CONFIG_URL, json=body)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    payload = _read_error(response)
    assert payload["code"] == "INVALID_CONTENT"
    assert payload["message"] == "`content` must be a string"
    assert config_path.read_text(encoding="utf-8") == "port: 7890\n"


def test_write_rejects_malformed_json(test_client: TestClient, config_path: Path) -> None:
    config_path.write_text("port: 7890\n", encoding="utf-8")

    response = test_client.put(
        CONFIG_URL,
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert _read_error(response)["code"] == "VALIDATION"
    assert config_path.read_text(encoding="utf-8") == "port: 7890\n"


def test_write_rejects_oversized_content(test_client: TestClient, config_path: Path) -> None:
    config_path.write_text("port: 7890\n", encoding="utf-8")
    before = config_path.read_bytes()

    response = test_client.put(CONFIG_URL, json={"content": "a" * (MAX_MIHOMO_CONFIG_SIZE_BYTES + 1)})

    assert response.status_code == 413
    payload = _read_error(response)
    assert payload["code"] == "CONTENT_TOO_LARGE"
    assert payload["message"] == f"Config content exceeds {MAX_MIHOMO_CONFIG_SIZE_BYTES} bytes"
    assert config_path.read_bytes() == before
    assert [path.name for path in config_path.parent.iterdir()] == ["config.yaml"]


def test_request_body_over_transport_limit_is_rejected(
    test_client: TestClient, service_app: Any, config_path: Path
) -> None:
    limit = service_app.state.settings.max_request_body_bytes

    response = test_client.put(CONFIG_URL, json={"content": "b" * (limit + 1)})

    assert response.status_code == 413
    assert response.json()["code"] == "PAYLOAD_TOO_LARGE"
    assert not config_path.exists()


def test_permission_denied_write_maps_to_forbidden(
    test_client: TestClient, service_app: Any, config_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path.write_text("port: 7890\n", encoding="utf-8")

    def _deny(src: object, dst: object) -> None:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("metacubexd.services.persistence.atomic.os.replace", _deny)

    response = test_client.put(CONFIG_URL, json={"content": "port: 7891\n"})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    payload = _read_error(response)
    assert payload["code"] == "PERMISSION_DENIED"
    assert payload["message"] == "Permission denied while trying to write Mihomo config file"
    assert config_path.read_text(encoding="utf-8") == "port: 7890\n"


def test_unexpected_store_error_maps_to_internal(test_client: TestClient, service_app: Any) -> None:
    class _ExplodingStore(ConfigStore):
        def read(self, path: Path | str | None = None):  # type: ignore[override]
            raise RuntimeError("boom")

    service_app.dependency_overrides[get_config_store] = lambda: _ExplodingStore()

    response = test_client.get(CONFIG_URL)

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert _read_error(response)["code"] == "INTERNAL"


def test_trace_header_is_echoed(test_client: TestClient, config_path: Path) -> None:
    config_path.write_text("port: 7890\n", encoding="utf-8")
    trace_id = "1b4e28ba-2fa1-11d2-883f-0016d3cca427"

    response = test_client.get(CONFIG_URL, headers={TRACE_HEADER: trace_id})

    assert response.headers[TRACE_HEADER] == trace_id


def test_unknown_route_uses_error_envelope(test_client: TestClient) -> None:
    response = test_client.get(f"{API_PREFIX}/does-not-exist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert _read_error(response)["code"] == "HTTP_ERROR"


def test_fetch_remote_returns_content(test_client: TestClient, service_app: Any) -> None:
    import httpx

    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="proxies: []\n"))
    service_app.dependency_overrides[get_remote_fetcher] = lambda: RemoteFetcher(transport=transport)

    response = test_client.get(f"{API_PREFIX}/fetch-remote", params={"url": "https://example.com/sub"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"content": "proxies: []\n"}


def test_fetch_remote_requires_url(test_client: TestClient) -> None:
    response = test_client.get(f"{API_PREFIX}/fetch-remote")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    payload = _read_error(response)
    assert payload["code"] == "VALIDATION"
    assert payload["message"] == "Missing required query parameter: url"


def test_fetch_remote_rejects_oversized_payload(test_client: TestClient, service_app: Any) -> None:
    import httpx

    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, headers={"content-length": str(MAX_MIHOMO_CONFIG_SIZE_BYTES + 1)})
    )
    service_app.dependency_overrides[get_remote_fetcher] = lambda: RemoteFetcher(transport=transport)

    response = test_client.get(f"{API_PREFIX}/fetch-remote", params={"url": "https://example.com/huge"})

    assert response.status_code == 413
    assert _read_error(response)["code"] == "CONTENT_TOO_LARGE"


def test_metrics_count_config_writes(test_client: TestClient) -> None:
    test_client.put(CONFIG_URL, json={"content": "port: 7891\n"})
    test_client.put(CONFIG_URL, json={"content": 1})

    response = test_client.get(f"{API_PREFIX}/metrics")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"] == "text/plain; version=0.0.4"
    body = response.text
    assert "metacubexd_config_writes_total{outcome=\"ok\"}" in body
    assert "metacubexd_config_writes_total{outcome=\"invalid_content\"}" in body
    assert 'metacubexd_requests_total{method="put",status="400"}' in body
