"""
DevCamper Backend — Health Check Route
========================================

What:  Liveness/readiness probe for load balancers and container health checks.
How:   SELECT 1 against the database plus the geocoder's circuit state.

Status levels:
    healthy:   database reachable, geocoder circuit closed
    degraded:  database reachable, geocoder circuit open (creates will fail)
    unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from devcamper import __version__
from devcamper.database import engine
from devcamper.schemas.common import HealthResponse
from devcamper.services.geocoder_service import geocoder_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Database connectivity and geocoder circuit state.",
)
async def health_check() -> JSONResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    geocoder_status = geocoder_service.health_status()
    if geocoder_status != "available" and overall == "healthy":
        overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoder=geocoder_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content=body.model_dump(),
    )
