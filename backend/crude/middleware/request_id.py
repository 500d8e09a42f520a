"""
Crude — Request ID Middleware
===============================

What:  Tags every request with a short correlation ID and echoes it back in
       the X-Request-ID response header.
Why:   Pipeline failures are logged and returned (JSON envelope) with the same
       ID, so a client-reported error maps straight to its log lines.
How:   Reuses a client-supplied X-Request-ID, otherwise mints an 8-char UUID
       prefix. The ID lives in a ContextVar (for loggers and the error
       envelope) and on request.state (for handlers).
When:  Outermost application middleware; runs before logging.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns and propagates the per-request correlation ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
