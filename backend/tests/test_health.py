"""DevCamper Backend — Health Check Tests."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from devcamper.config import settings
from devcamper.services.geocoder_service import CircuitBreaker, geocoder_service


@pytest.mark.asyncio
async def test_healthy(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["geocoder"] == "available"


@pytest.mark.asyncio
async def test_degraded_when_geocoder_circuit_open(client):
    with patch.object(geocoder_service.circuit_breaker, "state", CircuitBreaker.OPEN):
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_unhealthy_without_database(client):
    with patch("devcamper.routes.health.engine") as engine:
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("db down"))
        response = await client.get("/health")
    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "unhealthy"
    assert body["database"] == "disconnected"


@pytest.mark.asyncio
async def test_health_not_rate_limited(client):
    with patch.object(settings, "rate_limit_requests", 1):
        statuses = [(await client.get("/health")).status_code for _ in range(3)]
    assert statuses == [200, 200, 200]
