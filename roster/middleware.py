# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
HTTP middleware for the roster service.

RequestContextMiddleware carries the X-Request-ID into every log line of the
request, logs page and API mutations with their timing, and marks roster
responses as uncacheable: the page renders session state (filters, open
form, toast) that the next POST changes.

MetricsMiddleware labels Prometheus series by route template, so player ids,
slot positions and preference kinds never become label values.
"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

from roster.core.logging import get_logger, request_id_var
from roster.metrics.prometheus import HTTP_ERRORS, REQUEST_COUNT, REQUEST_LATENCY

logger = get_logger(__name__)

UNMATCHED = "unmatched"

SKIP_PATHS: tuple[str, ...] = (
    "/health", "/health/ready", "/metrics", "/openapi.json", "/docs", "/redoc",
)

MUTATING_METHODS: tuple[str, ...] = ("POST", "PUT", "PATCH", "DELETE")


def endpoint_label(request: Request) -> str:
    """Route template serving the request, e.g. /api/v1/form/slots/{index}."""
    partial = None
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return route.path
        if match == Match.PARTIAL and partial is None:
            # path matched, method did not (405)
            partial = route.path
    return partial or UNMATCHED


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id propagation, mutation log and no-store caching."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        start = time.time()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        if request.method in MUTATING_METHODS:
            logger.info(
                "%s %s -> %d (%.3fs)",
                request.method,
                request.url.path,
                response.status_code,
                time.time() - start,
                extra={"request_id": request_id},
            )
        if request.url.path not in SKIP_PATHS:
            response.headers["Cache-Control"] = "no-store"
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Request count, latency and error rate per route template."""

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = time.time() - start

        if request.url.path in SKIP_PATHS:
            return response

        endpoint = endpoint_label(request)
        status = str(response.status_code)
        REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
        REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(duration)
        if response.status_code >= 400:
            HTTP_ERRORS.labels(method=request.method, endpoint=endpoint, status=status).inc()
        return response
