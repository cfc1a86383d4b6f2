"""Prometheus metrics middleware: instruments every HTTP request.

The endpoint label is the URL path.  This service has a fixed, tiny set of
routes, so there is no cardinality concern; unknown paths are folded into
a single "other" label so a misconfigured client probing random URLs does
not create a new series per path.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from auth_mock.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

KNOWN_ENDPOINTS = frozenset({"/o/oauth2/v2/auth", "/token", "/health", "/ready"})


def _endpoint_label(path: str) -> str:
    return path if path in KNOWN_ENDPOINTS else "other"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect Prometheus metrics for every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes of /metrics itself are not counted.
        if request.url.path == "/metrics":
            return await call_next(request)

        endpoint = _endpoint_label(request.url.path)
        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(time.monotonic() - start)

        return response
