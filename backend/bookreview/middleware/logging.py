"""
BookReview Backend: Request Logging Middleware
================================================

What:  One access log line per request.
How:   Measures the time spent in the rest of the stack and logs at a level
       chosen by status class (5xx ERROR, 4xx WARNING, else INFO).

Log line:
    GET /books 200 12.3ms [a1b2c3d4] user=7 from 127.0.0.1

Request bodies and Authorization headers are never logged. The health check
at "/" is skipped.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from bookreview.middleware.request_id import request_id_var

logger = logging.getLogger("bookreview.access")

_SKIP_PATHS = {"/"}


def caller_id(request: Request) -> str:
    """Id of the authenticated caller, or '-' when the request is anonymous."""
    user = getattr(request.state, "user", None)
    return str(user.id) if user is not None else "-"


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code
        user = caller_id(request)

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": user,
            },
        )
        return response
