"""
DevCamper Backend — Middleware Package
========================================

What:  Cross-cutting stages applied to every request.

Stage order (request direction):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    Responses travel back through the same stages in reverse, so the request
    id header is attached and the access log sees the final status code.
    main.create_app() composes the stages from middleware_stages() below.
"""

from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from devcamper.config import settings
from devcamper.middleware.logging import RequestLoggingMiddleware
from devcamper.middleware.rate_limit import RateLimitMiddleware
from devcamper.middleware.request_id import RequestIDMiddleware


def middleware_stages():
    """
    Ordered (middleware class, options) pairs, outermost first.

    Starlette wraps each added middleware around the previous ones, so the
    caller adds them in reverse of this list.
    """
    return [
        (RateLimitMiddleware, {}),
        (RequestIDMiddleware, {}),
        (RequestLoggingMiddleware, {}),
        (GZipMiddleware, {"minimum_size": 500}),
        (
            CORSMiddleware,
            {
                "allow_origins": settings.cors_origins_list,
                "allow_credentials": True,
                "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                "allow_headers": ["Authorization", "Content-Type", "X-Request-ID"],
                "expose_headers": ["X-Request-ID", "Retry-After"],
            },
        ),
    ]
