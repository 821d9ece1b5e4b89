"""
DevCamper Backend — Shared Envelope Schemas
=============================================

Every response uses one envelope:
    success:    {"success": true, "data": ..., ["count", "total", "pagination"]}
    failure:    {"success": false, "error": "<message>"}
"""

from typing import Any, Dict, Type

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope returned for every 4xx/5xx."""

    success: bool = Field(default=False)
    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoder: str = Field(description="Geocoder circuit state: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")


def dump(schema: Type[BaseModel], obj: Any) -> Dict[str, Any]:
    """Serialize an ORM object through `schema` into JSON-safe primitives."""
    return schema.model_validate(obj).model_dump(mode="json")


def envelope(data: Any, **extra: Any) -> Dict[str, Any]:
    """Success envelope; `extra` adds sibling keys such as count."""
    return {"success": True, **extra, "data": data}
