"""
rbac_admin.observability.middleware

HTTP middleware for request-scoped logging context.

Responsibilities:
- Generate/propagate request IDs (`x-request-id`).
- Bind request metadata into structlog contextvars for every log line of the request.
- Emit one access-log event per request with status and latency (probes excluded).
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from rbac_admin.observability.logging import get_logger

log = get_logger(__name__)

# Kubernetes probes would otherwise dominate the access log.
QUIET_PATHS = frozenset({"/healthz", "/readyz"})


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        started = time.perf_counter()
        try:
            try:
                response: Response = await call_next(request)
            except Exception:
                log.exception("request_failed", duration_ms=_elapsed_ms(started))
                raise
            if request.url.path not in QUIET_PATHS:
                log.info(
                    "request_completed",
                    status=response.status_code,
                    duration_ms=_elapsed_ms(started),
                )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# The Authorization header is never bound here; actors are logged by id/slug only.
