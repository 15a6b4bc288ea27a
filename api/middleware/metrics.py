"""
Prometheus metrics middleware for the sales assistant API.

Exposes /metrics endpoint with request counters, latency histograms,
and dialogue metrics.
"""

import logging
import time

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Request metrics
REQUEST_COUNT = Counter(
    "assistant_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "assistant_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
ACTIVE_REQUESTS = Gauge(
    "assistant_http_active_requests",
    "Currently active HTTP requests",
)

# Dialogue metrics
TURN_COUNT = Counter(
    "assistant_turns_total",
    "Dialogue turns by route decision",
    ["route"],
)
TURN_LATENCY = Histogram(
    "assistant_turn_duration_seconds",
    "End-to-end turn latency",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)
GROUNDING_DROPPED = Counter(
    "assistant_grounding_dropped_lines_total",
    "Answer lines dropped by the grounding filter",
)
TURN_ERRORS = Counter(
    "assistant_turn_errors_total",
    "Turns that failed and were answered with an apology",
)


def record_turn(route: str, processing_time_ms: float, dropped_lines: int = 0):
    """Record a completed dialogue turn."""
    TURN_COUNT.labels(route=route).inc()
    TURN_LATENCY.observe(processing_time_ms / 1000.0)
    if dropped_lines:
        GROUNDING_DROPPED.inc(dropped_lines)


def record_turn_error():
    """Record a turn that raised."""
    TURN_ERRORS.inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        ACTIVE_REQUESTS.inc()
        start = time.time()

        try:
            response = await call_next(request)
        except Exception:
            ACTIVE_REQUESTS.dec()
            raise

        duration = time.time() - start
        endpoint = request.url.path

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)
        ACTIVE_REQUESTS.dec()

        return response


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
