"""
Crude — Request Logging Middleware
====================================

What:  One access-log line per request: method, path, status, duration,
       request ID and client address.
Why:   The CRUD pipelines answer most failures with redirects (303) or
       rendered pages, so the status alone rarely tells the story; the
       access line ties a request ID to what the client actually received.
How:   Times the downstream call with perf_counter and logs on
       "crude.access" with a level chosen from the status code.

Level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.

Request bodies are never logged (form posts carry user content).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from crude.middleware.request_id import request_id_var

logger = logging.getLogger("crude.access")

# Probed by load balancers every few seconds
QUIET_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Structured access logging with request-ID correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
