# Middleware package init
"""
IdeaStore Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID stored in a ContextVar and echoed back
    2. Logging: one access line per request, tagged with the request ID
    3. GZip / CORS: provided by FastAPI

    Responses travel the chain in reverse, so the X-Request-ID header is
    present on every response, including error envelopes.
"""
