"""
DevCamper Backend — Access Log Middleware
===========================================

What:  One log line per request: who made it, what it hit and how it ended.
       The caller is the principal admitted by the authorization gate
       ("<user id>/<role>"), or "anonymous" for public routes and requests
       the gate turned away.
How:   Level follows the status class (5xx → ERROR, 4xx → WARNING, else INFO).

Never logged: request bodies (passwords), Authorization headers, cookies,
query strings. Reset tokens in /resetpassword/<token> paths are masked.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from devcamper.middleware.request_id import request_id_var

logger = logging.getLogger("devcamper.access")

ANONYMOUS = "anonymous"
RESET_PATH_MARKER = "/resetpassword/"


def caller_of(request: Request) -> str:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        return ANONYMOUS
    return f"{principal.id}/{principal.role}"


def loggable_path(path: str) -> str:
    head, marker, _ = path.partition(RESET_PATH_MARKER)
    return f"{head}{marker}***" if marker else path


def level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    QUIET_PATHS = {"/health"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        path = loggable_path(request.url.path)
        caller = caller_of(request)
        rid = request_id_var.get("")
        logger.log(
            level_for(response.status_code),
            "%s %s %d %.1fms by %s [%s]",
            request.method,
            path,
            response.status_code,
            duration_ms,
            caller,
            rid,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "caller": caller,
            },
        )
        return response
