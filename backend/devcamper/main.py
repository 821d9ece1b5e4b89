"""
DevCamper Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware stages, exception handlers and
       routers; `app` is the module-level instance uvicorn serves
       (uvicorn devcamper.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware stages:                                          │
    │  Rate Limit → Request ID → Access Log → GZip → CORS          │
    │                                                              │
    │  Routers (/api/v1):                                          │
    │  auth │ bootcamps │ courses │ reviews │ users    + /health   │
    │                                                              │
    │  Exception handlers:                                         │
    │  DevCamperError → its status_code │ request validation → 400 │
    │  HTTPException → its status │ SQLAlchemyError, other → 500   │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, upload directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from devcamper import __version__
from devcamper.config import settings
from devcamper.database import dispose_engine
from devcamper.exceptions import DevCamperError, StoreFailure
from devcamper.middleware import middleware_stages
from devcamper.middleware.request_id import request_id_var
from devcamper.routes import auth, bootcamps, courses, health, reviews, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once: one stdout handler, ISO timestamps, level
    from settings.log_level. Modules log through logging.getLogger(__name__).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("DevCamper API %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report; the problem is in the log
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    uploads = Path(settings.file_upload_path)
    uploads.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", uploads.resolve())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("DevCamper API shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


def format_validation_errors(exc: RequestValidationError) -> str:
    """'body.name: Field required' style messages, joined with ', '."""
    messages = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = error.get("msg", "Invalid value")
        messages.append(f"{'.'.join(location)}: {message}" if location else message)
    return ", ".join(messages) or "Validation failed"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map every failure to exactly one {"success": false, "error": ...} response.

    Handler table:
        DevCamperError (and subclasses) → exc.status_code (+ Retry-After)
        RequestValidationError          → 400, joined field messages
        StarletteHTTPException          → its status (unknown route, 405)
        SQLAlchemyError                 → 500 "Server Error"
        Exception (fallback)            → 500 "Server Error"

    5xx details are logged with the request id, never returned.
    """

    @app.exception_handler(DevCamperError)
    async def handle_devcamper_error(request: Request, exc: DevCamperError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        headers = None
        retry_after = getattr(exc, "retry_after", None)
        if retry_after:
            headers = {"Retry-After": str(retry_after)}
        return error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = format_validation_errors(exc)
        logger.info("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_error(request: Request, exc: SQLAlchemyError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s", rid, str(exc), exc_info=True)
        return error_response(StoreFailure.status_code, StoreFailure().message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_response(500, "Server Error")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Build a fully configured application.

    Every call returns an independent app (own rate-limit window), which the
    test suite relies on.
    """
    app = FastAPI(
        title="DevCamper API",
        description="Bootcamp directory: bootcamps, courses, reviews and users.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # add_middleware wraps the existing stack, so the last one added runs first
    for middleware_class, options in reversed(middleware_stages()):
        app.add_middleware(middleware_class, **options)

    register_exception_handlers(app)

    for module in (auth, bootcamps, courses, reviews, users):
        app.include_router(module.router, prefix=settings.api_prefix)
    app.include_router(health.router)

    return app


app = create_app()
