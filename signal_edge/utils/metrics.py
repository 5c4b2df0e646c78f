from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


HTTP_REQUESTS_TOTAL = Counter(
    "signal_edge_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "signal_edge_http_request_duration_seconds",
    "HTTP request duration (seconds)",
    ["method", "path"],
)

PROVIDER_CALLS_TOTAL = Counter(
    "signal_edge_provider_calls_total",
    "Calls to the database/auth provider",
    ["operation", "result"],
)

ENVELOPE_ERRORS_TOTAL = Counter(
    "signal_edge_envelope_errors_total",
    "Error envelopes returned, by machine code",
    ["code"],
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
