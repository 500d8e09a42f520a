"""
Crude — Response Finalization Primitives
==========================================

What:  The building blocks CrudController uses to finish a request: content
       negotiation, the JSON error envelope, redirects and the plain-text
       "not implemented" dead end.
Why:   Every pipeline failure ends in one of two shapes (JSON 400 or flash +
       redirect); keeping the shapes here keeps the controller's handlers
       focused on the operation itself.

Content Negotiation:
    The first media range of the Accept header is mapped to a file
    extension with `mimetypes` ("application/json" → "json",
    "text/html" → "html"). Only "json" switches error handling to JSON;
    anything else, including a missing header or "*/*", is treated as a
    browser.

Error Envelope:
    {"error": "<code>", "message": "<safe message>", "request_id": "<rid>"}
    Application errors (CrudeError) contribute their code and message.
    Anything else is reported as "internal_error" with a generic message;
    details stay in the server log.
"""

import logging
import mimetypes
from typing import Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, RedirectResponse

from crude.exceptions import CrudeError, UnimplementedRouteError
from crude.middleware.request_id import request_id_var
from crude.schemas.view import ErrorResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


def negotiated_format(request: Request) -> Optional[str]:
    """Extension (without dot) for the client's preferred media type."""
    accept = request.headers.get("accept", "")
    first = accept.split(",", 1)[0].split(";", 1)[0].strip().lower()
    if not first:
        return None
    extension = mimetypes.guess_extension(first)
    return extension.lstrip(".") if extension else None


def wants_json(request: Request) -> bool:
    return negotiated_format(request) == "json"


def error_message(exc: BaseException) -> str:
    """User-facing text for an error (safe to flash or return)."""
    if isinstance(exc, CrudeError):
        return exc.message
    return GENERIC_ERROR_MESSAGE


def error_code(exc: BaseException) -> str:
    if isinstance(exc, CrudeError):
        return exc.code
    return "internal_error"


def json_error(exc: BaseException, status_code: int = 400) -> JSONResponse:
    """The JSON error envelope for `exc`."""
    body = ErrorResponse(
        error=error_code(exc),
        message=error_message(exc),
        request_id=request_id_var.get("") or None,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def redirect(url: str) -> RedirectResponse:
    """
    See Other: the follow-up request is always a GET, whatever the method of
    the request that failed or succeeded.
    """
    return RedirectResponse(url=url, status_code=303)


def unimplemented(message: str) -> PlainTextResponse:
    """Plain-text 501 for deliberate dead ends and missing configuration."""
    exc = UnimplementedRouteError(message=message)
    logger.warning("Unimplemented route hit: %s", exc.message)
    return PlainTextResponse(exc.message, status_code=exc.status_code)
