"""Lightweight Prometheus-style metrics utilities for the service."""

from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Iterable

_COUNTERS: Counter[str] = Counter()
_LOCK = Lock()

_REQUESTS_METRIC = "metacubexd_requests_total"
_CONFIG_WRITES_METRIC = "metacubexd_config_writes_total"


def record_request(method: str, status_code: int) -> None:
    """Track an HTTP request labelled by method and status code."""

    labels = f'method="{method.lower()}",status="{status_code}"'
    sample = f"{_REQUESTS_METRIC}{{{labels}}}"
    with _LOCK:
        _COUNTERS[sample] += 1


def record_config_write(outcome: str) -> None:
    """Track a config write labelled ``ok`` or by its error code."""

    sample = f'{_CONFIG_WRITES_METRIC}{{outcome="{outcome.lower()}"}}'
    with _LOCK:
        _COUNTERS[sample] += 1


def _snapshot(metric: str) -> Iterable[tuple[str, int]]:
    """Return recorded samples for ``metric`` in sorted order."""

    with _LOCK:
        return sorted(
            (sample, value) for sample, value in _COUNTERS.items() if sample.startswith(f"{metric}{{")
        )


def reset() -> None:
    """Clear all recorded samples."""

    with _LOCK:
        _COUNTERS.clear()


def render(service_version: str) -> str:
    """Render metrics using the Prometheus text exposition format."""

    lines = [
        f"# HELP {_REQUESTS_METRIC} Count of HTTP requests processed by the metacubexd service",
        f"# TYPE {_REQUESTS_METRIC} counter",
    ]
    request_samples = list(_snapshot(_REQUESTS_METRIC))
    lines.extend(f"{sample} {value}" for sample, value in request_samples)
    if not request_samples:
        lines.append(f'{_REQUESTS_METRIC}{{method="none",status="0"}} 0')

    lines.extend(
        [
            f"# HELP {_CONFIG_WRITES_METRIC} Count of Mihomo config write attempts by outcome",
            f"# TYPE {_CONFIG_WRITES_METRIC} counter",
        ]
    )
    lines.extend(f"{sample} {value}" for sample, value in _snapshot(_CONFIG_WRITES_METRIC))

    lines.extend(
        [
            "# HELP metacubexd_service_info Static service metadata",
            "# TYPE metacubexd_service_info gauge",
            f'metacubexd_service_info{{version="{service_version}"}} 1',
        ]
    )
    return "\n".join(lines) + "\n"


__all__ = ["record_config_write", "record_request", "render", "reset"]
