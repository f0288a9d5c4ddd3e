"""Prometheus metric definitions shared across the gateway."""

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["route", "method"],
)
mediator_requests_total = Counter(
    "mediator_requests_total",
    "Store requests seen by the mediator",
    ["service", "outcome"],
)
provider_requests_total = Counter(
    "provider_requests_total",
    "Outbound provider API calls",
    ["service", "endpoint", "outcome"],
)
provider_latency_seconds = Histogram(
    "provider_latency_seconds",
    "Provider API call latency seconds",
    ["service", "endpoint"],
)
token_refresh_total = Counter(
    "token_refresh_total",
    "Provider token refreshes",
    ["service", "outcome"],
)
store_callbacks_total = Counter(
    "store_callbacks_total",
    "Settlement callbacks sent to the store",
    ["outcome"],
)
notifications_total = Counter(
    "notifications_total",
    "Provider notifications processed",
    ["service", "outcome"],
)
payment_sessions_active = Gauge(
    "payment_sessions_active",
    "Live in-memory payment sessions",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
