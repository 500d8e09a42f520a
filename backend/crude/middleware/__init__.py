# Middleware package init
"""
Crude — Middleware Package
============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Flash] → [CORS] → [GZip] → Routes

    1. Request ID: correlation ID for every log line and error envelope
    2. Logging: access line with status and duration
    3. Flash: binds the flash-store key cookie to request.state.flash_key
    4. CORS / GZip: Starlette built-ins

    Responses unwind in reverse, so the request ID header and the flash
    cookie are set on the way out.
"""
