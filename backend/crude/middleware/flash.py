"""
Crude — Flash Key Middleware
==============================

What:  Gives every client a stable flash key via a cookie.
Why:   Flash messages are queued server-side (crude.services.flash_service);
       the key is how the request after a redirect finds them again.
How:   Reuses the key from the flash cookie when it looks valid, otherwise
       mints a new one and sets the cookie on the response.
When:  Must wrap every route that adds or consumes flash messages.
"""

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from crude.config import settings

_KEY_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class FlashMiddleware(BaseHTTPMiddleware):
    """Stores the client's flash key on request.state.flash_key."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        key = request.cookies.get(settings.flash_cookie_name, "")
        is_new = not _KEY_PATTERN.match(key)
        if is_new:
            key = uuid.uuid4().hex

        request.state.flash_key = key

        response = await call_next(request)

        if is_new:
            response.set_cookie(
                settings.flash_cookie_name,
                key,
                httponly=True,
                samesite="lax",
            )
        return response
