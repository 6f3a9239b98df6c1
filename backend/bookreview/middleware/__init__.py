"""
BookReview Backend: Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: assigns the correlation id used by every later log line
    2. Logging: one access line per request with status and duration
    3. GZip / CORS: provided by Starlette

Responses travel back through the same chain in reverse, so the
X-Request-ID header is present on every response, errors included.
"""
