"""Application metrics using the Prometheus client library.

All metrics live here so there is a single inventory of what the service
measures.  Other modules import a metric and increment/observe it at the
point of action.  Scraped from GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Authorization-code lifecycle
# ---------------------------------------------------------------------------

AUTH_SESSIONS_CREATED = Counter(
    "auth_sessions_created_total",
    "Authorization codes minted by POST /o/oauth2/v2/auth",
)

TOKEN_EXCHANGES = Counter(
    "token_exchanges_total",
    "Token endpoint redemptions by outcome",
    ["outcome"],  # "issued" or the error class name, e.g. "SessionNotFound"
)
