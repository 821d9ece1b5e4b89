"""
DevCamper Backend — Course Service
====================================

What:  Course CRUD plus the bootcamp's average_cost aggregate.
How:   After every add/update/delete the average is recomputed inside the same
       session, before the response is sent:
           average_cost = ceil(avg(tuition) / 10) * 10, or None with no courses
"""

import logging
import math
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devcamper.auth.dependencies import Principal
from devcamper.auth.policy import ensure_can_mutate
from devcamper.database import flush_changes
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.schemas.bootcamp import BootcampSummary
from devcamper.schemas.common import dump
from devcamper.schemas.course import CourseCreate, CourseResponse, CourseUpdate
from devcamper.services.common import get_or_404
from devcamper.services.query_builder import Page, parse_query, run_query

logger = logging.getLogger(__name__)


def serialize_course(course: Course) -> Dict[str, Any]:
    return dump(CourseResponse, course)


def serialize_with_bootcamp(course: Course) -> Dict[str, Any]:
    data = serialize_course(course)
    data["bootcamp"] = dump(BootcampSummary, course.bootcamp)
    return data


def average_cost(mean_tuition: Optional[float]) -> Optional[int]:
    """Round a mean tuition up to the next multiple of 10."""
    if mean_tuition is None:
        return None
    return int(math.ceil(mean_tuition / 10) * 10)


class CourseService:
    async def recompute_average_cost(self, db: AsyncSession, bootcamp_id: Any) -> Optional[int]:
        mean = await db.scalar(
            select(func.avg(Course.tuition)).where(Course.bootcamp_id == bootcamp_id)
        )
        bootcamp = await db.get(Bootcamp, bootcamp_id)
        if bootcamp is None:
            return None
        bootcamp.average_cost = average_cost(float(mean) if mean is not None else None)
        await flush_changes(db, "bootcamp")
        logger.debug("Bootcamp %s average_cost=%s", bootcamp_id, bootcamp.average_cost)
        return bootcamp.average_cost

    async def list_courses(self, db: AsyncSession, params: Mapping[str, Any]) -> Page:
        spec = parse_query(params, Course)
        return await run_query(
            db,
            Course,
            spec,
            serialize_with_bootcamp,
            options=[selectinload(Course.bootcamp)],
            keep=("bootcamp",),
        )

    async def list_for_bootcamp(self, db: AsyncSession, bootcamp_id: Any) -> list:
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")
        result = await db.execute(
            select(Course)
            .where(Course.bootcamp_id == bootcamp.id)
            .order_by(Course.created_at.desc(), Course.id)
        )
        return [serialize_course(course) for course in result.scalars().all()]

    async def get_course(self, db: AsyncSession, course_id: Any) -> Dict[str, Any]:
        course = await get_or_404(
            db, Course, course_id, "course", options=[selectinload(Course.bootcamp)]
        )
        return serialize_with_bootcamp(course)

    async def add_course(
        self,
        db: AsyncSession,
        principal: Principal,
        bootcamp_id: Any,
        payload: CourseCreate,
    ) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: no such bootcamp
            NotAuthorized: requester neither owns the bootcamp nor is admin
        """
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")
        ensure_can_mutate(bootcamp, principal, action="add a course to")

        course = Course(**payload.model_dump(), bootcamp_id=bootcamp.id, user_id=principal.id)
        db.add(course)
        await flush_changes(db, "course")
        await self.recompute_average_cost(db, bootcamp.id)
        return serialize_course(course)

    async def update_course(
        self,
        db: AsyncSession,
        principal: Principal,
        course_id: Any,
        payload: CourseUpdate,
    ) -> Dict[str, Any]:
        course = await get_or_404(db, Course, course_id, "course")
        ensure_can_mutate(course, principal, action="update")

        for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(course, key, value)
        await flush_changes(db, "course")
        await self.recompute_average_cost(db, course.bootcamp_id)
        return serialize_course(course)

    async def delete_course(self, db: AsyncSession, principal: Principal, course_id: Any) -> None:
        course = await get_or_404(db, Course, course_id, "course")
        ensure_can_mutate(course, principal, action="delete")

        bootcamp_id = course.bootcamp_id
        await db.delete(course)
        await flush_changes(db, "course")
        await self.recompute_average_cost(db, bootcamp_id)


course_service = CourseService()
