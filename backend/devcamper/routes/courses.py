"""
DevCamper Backend — Course Route Handlers
===========================================

/courses for the global listing and single courses; /bootcamps/{id}/courses
for a bootcamp's courses and for adding one.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.dependencies import Principal, require_roles
from devcamper.database import get_db_session
from devcamper.models.user import Role
from devcamper.routes import list_query_params
from devcamper.schemas.common import ErrorResponse, envelope
from devcamper.schemas.course import CourseCreate, CourseUpdate
from devcamper.services.course_service import course_service

router = APIRouter(tags=["Courses"])

publisher_or_admin = require_roles(Role.PUBLISHER, Role.ADMIN)


@router.get(
    "/courses",
    responses={400: {"description": "Invalid filter, sort or select", "model": ErrorResponse}},
    summary="List courses",
    description="Same filter grammar as /bootcamps. Each course includes a bootcamp summary.",
)
async def list_courses(
    params: Dict[str, Any] = Depends(list_query_params),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    page = await course_service.list_courses(db, params)
    return page.to_envelope()


@router.get(
    "/bootcamps/{bootcamp_id}/courses",
    responses={404: {"description": "Bootcamp not found", "model": ErrorResponse}},
    summary="Courses of one bootcamp",
)
async def list_bootcamp_courses(
    bootcamp_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    data = await course_service.list_for_bootcamp(db, bootcamp_id)
    return envelope(data, count=len(data))


@router.get(
    "/courses/{course_id}",
    responses={404: {"description": "Course not found", "model": ErrorResponse}},
    summary="Get one course",
)
async def get_course(
    course_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await course_service.get_course(db, course_id))


@router.post(
    "/bootcamps/{bootcamp_id}/courses",
    status_code=201,
    responses={
        403: {"description": "Not the bootcamp owner", "model": ErrorResponse},
        404: {"description": "Bootcamp not found", "model": ErrorResponse},
    },
    summary="Add a course to a bootcamp",
)
async def add_course(
    bootcamp_id: str,
    payload: CourseCreate,
    principal: Principal = Depends(publisher_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await course_service.add_course(db, principal, bootcamp_id, payload))


@router.put(
    "/courses/{course_id}",
    responses={
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Course not found", "model": ErrorResponse},
    },
    summary="Update a course",
)
async def update_course(
    course_id: str,
    payload: CourseUpdate,
    principal: Principal = Depends(publisher_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await course_service.update_course(db, principal, course_id, payload))


@router.delete(
    "/courses/{course_id}",
    responses={
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Course not found", "model": ErrorResponse},
    },
    summary="Delete a course",
)
async def delete_course(
    course_id: str,
    principal: Principal = Depends(publisher_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    await course_service.delete_course(db, principal, course_id)
    return envelope({})
