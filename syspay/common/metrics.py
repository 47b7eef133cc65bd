"""Prometheus metric definitions for the API process."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
charge_requests_total = Counter(
    "charge_requests_total",
    "Charge operations requested",
    ["service", "operation"],
)
charges_created_total = Counter(
    "charges_created_total",
    "Charges persisted",
    ["service", "payment_method"],
)
charge_status_transitions_total = Counter(
    "charge_status_transitions_total",
    "Applied charge status transitions",
    ["service", "from_status", "to_status"],
)
idempotency_conflicts_total = Counter(
    "idempotency_conflicts_total",
    "Charge creations rejected for a reused idempotency key",
    ["service", "stage"],
)
permission_denials_total = Counter(
    "permission_denials_total",
    "Requests rejected by the permission gate",
    ["service", "permission"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
