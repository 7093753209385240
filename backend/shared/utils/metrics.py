"""
Lightweight metrics collection for Live Crease.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
PROVIDER_REQUESTS = Counter(
    "lc_provider_requests_total",
    "Total provider HTTP requests",
    ["provider", "feed", "status"],
)
FEED_RESOLUTIONS = Counter(
    "lc_feed_resolutions_total",
    "Feed resolutions by the source that served them",
    ["feed", "source"],
)
PROVIDER_FAILURES = Counter(
    "lc_provider_failures_total",
    "Provider attempts that were skipped or failed during resolution",
    ["provider", "feed", "reason"],
)
SCHEDULER_TICKS = Counter(
    "lc_scheduler_ticks_total",
    "Interval scheduler ticks fired",
    ["poll"],
)
SCHEDULER_TICK_ERRORS = Counter(
    "lc_scheduler_tick_errors_total",
    "Interval scheduler ticks whose operation raised",
    ["poll"],
)

# ── Histograms ──────────────────────────────────────────────────────────
PROVIDER_LATENCY = Histogram(
    "lc_provider_latency_seconds",
    "Provider request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)
FEED_RESOLVE_SECONDS = Histogram(
    "lc_feed_resolve_seconds",
    "Time to resolve one feed across its provider cascade",
    ["feed"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Gauges ──────────────────────────────────────────────────────────────
ACTIVE_POLLS = Gauge(
    "lc_active_polls",
    "Interval schedulers currently running",
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        histogram.labels(**labels).observe(elapsed)


def start_metrics_server(settings: Settings | None = None, port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = settings or get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
