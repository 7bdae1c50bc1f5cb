"""Prometheus metrics for monitoring and observability."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    Info,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .settings import settings

# ==============================================================================
# APPLICATION INFO
# ==============================================================================

app_info = Info("donation_checkout", "Donation checkout API information")
app_info.info({"version": settings.APP_VERSION, "service": settings.SERVICE_NAME})

# ==============================================================================
# HTTP METRICS
# ==============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ==============================================================================
# CHECKOUT METRICS
# ==============================================================================

donation_checkouts_total = Counter(
    "donation_checkouts_total",
    "Checkout attempts by path and outcome",
    ["payment_type", "payment_method", "outcome"],
)

processor_calls_total = Counter(
    "processor_calls_total",
    "Calls issued to the payment processor",
    ["operation", "status"],
)

# ==============================================================================
# RATE LIMITER METRICS
# ==============================================================================

rate_limit_hits_total = Counter(
    "rate_limit_hits_total",
    "Total rate limit hits (requests blocked)",
)


@contextmanager
def track_processor_call(operation: str) -> Iterator[None]:
    try:
        yield
    except Exception:
        processor_calls_total.labels(operation=operation, status="error").inc()
        raise
    processor_calls_total.labels(operation=operation, status="ok").inc()


def endpoint_label(request: Request) -> str:
    """Route path the request matched, or ``unmatched`` for unknown paths."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        start_time = time.time()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
        finally:
            endpoint = endpoint_label(request)
            duration = time.time() - start_time
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
        return response


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "PrometheusMiddleware",
    "donation_checkouts_total",
    "endpoint_label",
    "get_metrics",
    "processor_calls_total",
    "rate_limit_hits_total",
    "track_processor_call",
]
