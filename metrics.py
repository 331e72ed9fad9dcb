"""Prometheus metrics helpers for the music API client."""
from __future__ import annotations

import time
from typing import Iterable

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

REGISTRY = CollectorRegistry()

music_api_requests_total = Counter(
    "music_api_requests_total",
    "Total music API operations grouped by outcome",
    labelnames=("operation", "result"),
    registry=REGISTRY,
)

music_api_http_retries_total = Counter(
    "music_api_http_retries_total",
    "HTTP attempts that were retried grouped by reason",
    labelnames=("reason",),
    registry=REGISTRY,
)

music_api_endpoint_failures_total = Counter(
    "music_api_endpoint_failures_total",
    "Base URLs that failed during endpoint fallback",
    labelnames=("endpoint",),
    registry=REGISTRY,
)

music_api_poll_total = Counter(
    "music_api_poll_total",
    "Finished task polls grouped by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)

music_api_poll_attempts = Histogram(
    "music_api_poll_attempts",
    "Number of status fetches needed to finish a poll",
    buckets=(1, 2, 5, 10, 20, 45, 90, 180, 360),
    registry=REGISTRY,
)

music_api_request_duration_seconds = Histogram(
    "music_api_request_duration_seconds",
    "Duration of music API operations",
    labelnames=("operation",),
    registry=REGISTRY,
)

process_uptime_seconds = Gauge(
    "process_uptime_seconds",
    "Process uptime in seconds",
    registry=REGISTRY,
)

_START_TIME = time.time()


def render_metrics() -> bytes:
    """Return the current metrics payload in Prometheus text format."""

    process_uptime_seconds.set(max(0.0, time.time() - _START_TIME))
    return generate_latest(REGISTRY)


__all__: Iterable[str] = [
    "REGISTRY",
    "music_api_requests_total",
    "music_api_http_retries_total",
    "music_api_endpoint_failures_total",
    "music_api_poll_total",
    "music_api_poll_attempts",
    "music_api_request_duration_seconds",
    "process_uptime_seconds",
    "render_metrics",
]
