"""Prometheus instrumentation for API requests."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from talktopost.telemetry import observe_request

# Scrapes and liveness checks would drown out real traffic.
UNINSTRUMENTED_PATHS = frozenset({"/metrics", "/health"})
UNMATCHED_ROUTE = "unmatched"


def route_label(request: Request) -> str:
    """Route template (``/recordings/{recording_id}``) so ids never become labels."""

    route = request.scope.get("route")
    template = getattr(route, "path", None)
    return template or UNMATCHED_ROUTE


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Count requests and latency per route template."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in UNINSTRUMENTED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            observe_request(
                request.method,
                route_label(request),
                status_code,
                time.perf_counter() - started,
            )
