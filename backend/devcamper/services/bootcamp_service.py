"""
DevCamper Backend — Bootcamp Service
======================================

What:  Bootcamp CRUD, radius search and photo upload.
How:   Composes the query builder, the ownership policy, the geocoder and the
       file service around the request session.
Who:   Called by routes/bootcamps.py.

Write Flow (create):
    ┌─────────────┐    ┌──────────────┐    ┌────────────┐    ┌─────────┐
    │ One-per-    │───▶│  Geocode     │───▶│  Slug from │───▶│  Flush  │
    │ publisher   │    │  address     │    │  name      │    │  (DB)   │
    └─────────────┘    └──────────────┘    └────────────┘    └─────────┘

    Every policy check runs before the first write, so a rejected request
    leaves the store untouched.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devcamper.auth.dependencies import Principal
from devcamper.auth.policy import ensure_can_create_bootcamp, ensure_can_mutate
from devcamper.database import flush_changes
from devcamper.exceptions import ValidationError
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.models.review import Review
from devcamper.schemas.bootcamp import BootcampCreate, BootcampResponse, BootcampUpdate
from devcamper.schemas.common import dump
from devcamper.schemas.course import CourseResponse
from devcamper.services.common import get_or_404, slugify
from devcamper.services.file_service import file_service
from devcamper.services.geocoder_service import (
    EARTH_RADIUS_MILES,
    distance_miles,
    geocoder_service,
)
from devcamper.services.query_builder import Page, parse_query, run_query

logger = logging.getLogger(__name__)


def serialize_bootcamp(bootcamp: Bootcamp) -> Dict[str, Any]:
    return dump(BootcampResponse, bootcamp)


def serialize_with_courses(bootcamp: Bootcamp) -> Dict[str, Any]:
    """Bootcamp plus its courses; `courses` must have been eager-loaded."""
    data = serialize_bootcamp(bootcamp)
    data["courses"] = [dump(CourseResponse, course) for course in bootcamp.courses]
    return data


class BootcampService:
    """Business logic for /bootcamps."""

    async def list_bootcamps(self, db: AsyncSession, params: Mapping[str, Any]) -> Page:
        spec = parse_query(params, Bootcamp)
        return await run_query(
            db,
            Bootcamp,
            spec,
            serialize_with_courses,
            options=[selectinload(Bootcamp.courses)],
            keep=("courses",),
        )

    async def get_bootcamp(self, db: AsyncSession, bootcamp_id: Any) -> Dict[str, Any]:
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")
        return serialize_bootcamp(bootcamp)

    async def create_bootcamp(
        self, db: AsyncSession, principal: Principal, payload: BootcampCreate
    ) -> Dict[str, Any]:
        """
        Raises:
            DuplicateOwnedResource: a non-admin already owns a bootcamp
            ValidationError: the address cannot be located, or the name is taken
            UpstreamFailure: the geocoder is unavailable
        """
        existing = await db.scalar(
            select(func.count()).select_from(Bootcamp).where(Bootcamp.user_id == principal.id)
        )
        ensure_can_create_bootcamp(existing or 0, principal)

        location = await geocoder_service.geocode(payload.address)
        bootcamp = Bootcamp(
            **payload.model_dump(),
            **location.as_columns(),
            user_id=principal.id,
            slug=slugify(payload.name),
        )
        db.add(bootcamp)
        await flush_changes(db, "bootcamp")
        logger.info("Bootcamp %s created by %s", bootcamp.id, principal.id)
        return serialize_bootcamp(bootcamp)

    async def update_bootcamp(
        self,
        db: AsyncSession,
        principal: Principal,
        bootcamp_id: Any,
        payload: BootcampUpdate,
    ) -> Dict[str, Any]:
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")
        ensure_can_mutate(bootcamp, principal, action="update")

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if "address" in changes and changes["address"] != bootcamp.address:
            location = await geocoder_service.geocode(changes["address"])
            changes.update(location.as_columns())
        if "name" in changes:
            changes["slug"] = slugify(changes["name"])

        for key, value in changes.items():
            setattr(bootcamp, key, value)
        await flush_changes(db, "bootcamp")
        return serialize_bootcamp(bootcamp)

    async def delete_bootcamp(
        self, db: AsyncSession, principal: Principal, bootcamp_id: Any
    ) -> None:
        """Removes the bootcamp together with its courses and reviews."""
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")
        ensure_can_mutate(bootcamp, principal, action="delete")

        courses = await db.execute(delete(Course).where(Course.bootcamp_id == bootcamp.id))
        reviews = await db.execute(delete(Review).where(Review.bootcamp_id == bootcamp.id))
        await db.delete(bootcamp)
        await flush_changes(db, "bootcamp")
        logger.info(
            "Bootcamp %s deleted with %d courses and %d reviews",
            bootcamp.id,
            courses.rowcount,
            reviews.rowcount,
        )

    async def bootcamps_in_radius(
        self, db: AsyncSession, zipcode: str, distance: float
    ) -> List[Dict[str, Any]]:
        """
        Bootcamps within `distance` miles of `zipcode`.

        How:
            1. Geocode the zipcode to a center point
            2. Bounding box on latitude/longitude (index-friendly prefilter)
            3. Exact great-circle distance in Python
        """
        if distance <= 0:
            raise ValidationError(message="Distance must be a positive number of miles")

        center = await geocoder_service.geocode(zipcode)
        lat, lng = center.latitude, center.longitude

        # Angular radius of the search circle, in degrees
        radius_deg = math.degrees(distance / EARTH_RADIUS_MILES)
        stmt = select(Bootcamp).where(
            Bootcamp.latitude.is_not(None),
            Bootcamp.longitude.is_not(None),
            Bootcamp.latitude.between(lat - radius_deg, lat + radius_deg),
        )
        cos_lat = math.cos(math.radians(lat))
        lng_deg = radius_deg / cos_lat if cos_lat > 1e-6 else 360.0
        if lng_deg < 180.0:
            low, high = lng - lng_deg, lng + lng_deg
            if low >= -180.0 and high <= 180.0:
                stmt = stmt.where(Bootcamp.longitude.between(low, high))

        rows = (await db.execute(stmt.order_by(Bootcamp.created_at.desc()))).scalars().all()
        return [
            serialize_bootcamp(bootcamp)
            for bootcamp in rows
            if distance_miles(lat, lng, bootcamp.latitude, bootcamp.longitude) <= distance
        ]

    async def upload_photo(
        self,
        db: AsyncSession,
        principal: Principal,
        bootcamp_id: Any,
        filename: Optional[str],
        content_type: Optional[str],
        content: Optional[bytes],
    ) -> str:
        """Returns the stored photo filename."""
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")
        ensure_can_mutate(bootcamp, principal, action="update")

        name = await file_service.store_photo(bootcamp.id, filename, content_type, content)
        bootcamp.photo = name
        await flush_changes(db, "bootcamp")
        return name


bootcamp_service = BootcampService()
