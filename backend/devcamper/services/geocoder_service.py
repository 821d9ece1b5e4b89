"""
DevCamper Backend — Geocoder Service
======================================

What:  Resolves a free-form address or a zipcode to coordinates and address
       parts.
How:   GET against a Nominatim-compatible search endpoint with httpx, wrapped
       in tenacity retries and a circuit breaker.
Who:   BootcampService (create/update geocoding, radius search).

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter on transport errors
    2. Circuit breaker so a dead provider fails requests in <1ms
    3. Every provider failure surfaces as UpstreamFailure (502)
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from devcamper import __version__
from devcamper.config import settings
from devcamper.exceptions import CircuitBreakerOpenError, UpstreamFailure, ValidationError

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3963.2


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    country: Optional[str] = None

    def as_columns(self) -> Dict[str, Any]:
        """Bootcamp column values for this location."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "formatted_address": self.formatted_address,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zipcode": self.zipcode,
            "country": self.country,
        }


def distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance between two points, in miles."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker guarding the geocoder.

    State Machine:
        CLOSED → failure_count reaches threshold → OPEN
        OPEN → recovery_timeout elapsed → HALF_OPEN (one trial call)
        HALF_OPEN → success → CLOSED, failure → OPEN

    Single-process asyncio only; counters are plain attributes.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True if a call may proceed.

        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not elapsed
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
                self.state = self.HALF_OPEN
                return True
            raise CircuitBreakerOpenError(recovery_time=int(self.recovery_timeout - elapsed))

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Geocoder
# ══════════════════════════════════════════════════════════════════════════

class GeocoderService:
    """
    Nominatim-style geocoder client.

    Args:
        transport: optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    async def geocode(self, query: str) -> GeoLocation:
        """
        Resolve `query` to the best matching location.

        Raises:
            ValidationError: the provider found nothing for `query`
            CircuitBreakerOpenError: too many recent provider failures
            UpstreamFailure: the provider could not be reached or answered badly
        """
        self.circuit_breaker.can_execute()

        params: Dict[str, Any] = {
            "q": query,
            "format": "json",
            "addressdetails": 1,
            "limit": 1,
        }
        if settings.geocoder_api_key:
            params["key"] = settings.geocoder_api_key

        start_time = time.perf_counter()
        try:
            results = await self._search_with_retry(params)
        except (httpx.HTTPError, ValueError) as e:
            self.circuit_breaker.record_failure()
            logger.error("Geocoder request for %r failed: %s", query, str(e))
            raise UpstreamFailure(
                message="Geocoding service is unavailable. Please try again later.",
                context={"error_type": type(e).__name__},
            ) from e

        self.circuit_breaker.record_success()
        logger.info(
            "Geocoded %r in %.0fms (%d results)",
            query,
            (time.perf_counter() - start_time) * 1000,
            len(results),
        )

        if not results:
            raise ValidationError(message=f"Could not find a location for '{query}'")
        return self._to_location(results[0])

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential(multiplier=settings.retry_min_wait, max=settings.retry_max_wait)
        + wait_random(0, 1),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _search_with_retry(self, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        async with httpx.AsyncClient(
            timeout=settings.geocoder_timeout,
            transport=self.transport,
            headers={"User-Agent": f"devcamper-api/{__version__}"},
        ) as client:
            response = await client.get(settings.geocoder_url, params=params)
            response.raise_for_status()
            payload = response.json()
        if not isinstance(payload, list):
            raise ValueError("Unexpected geocoder payload")
        return payload

    @staticmethod
    def _to_location(result: Dict[str, Any]) -> GeoLocation:
        address = result.get("address") or {}
        street = " ".join(
            part for part in (address.get("house_number"), address.get("road")) if part
        ) or None
        country_code = address.get("country_code")
        return GeoLocation(
            latitude=float(result["lat"]),
            longitude=float(result["lon"]),
            formatted_address=result.get("display_name"),
            street=street,
            city=address.get("city") or address.get("town") or address.get("village"),
            state=address.get("state"),
            zipcode=address.get("postcode"),
            country=country_code.upper() if country_code else address.get("country"),
        )

    def health_status(self) -> str:
        if self.circuit_breaker.state == CircuitBreaker.OPEN:
            return "circuit_open"
        return "available"


geocoder_service = GeocoderService()
