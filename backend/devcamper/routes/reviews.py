"""
DevCamper Backend — Review Route Handlers
===========================================

Reviews are written by the `user` role (and admins); publishers read them.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.dependencies import Principal, require_roles
from devcamper.database import get_db_session
from devcamper.models.user import Role
from devcamper.routes import list_query_params
from devcamper.schemas.common import ErrorResponse, envelope
from devcamper.schemas.review import ReviewCreate, ReviewUpdate
from devcamper.services.review_service import review_service

router = APIRouter(tags=["Reviews"])

user_or_admin = require_roles(Role.USER, Role.ADMIN)


@router.get(
    "/reviews",
    responses={400: {"description": "Invalid filter, sort or select", "model": ErrorResponse}},
    summary="List reviews",
)
async def list_reviews(
    params: Dict[str, Any] = Depends(list_query_params),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    page = await review_service.list_reviews(db, params)
    return page.to_envelope()


@router.get(
    "/bootcamps/{bootcamp_id}/reviews",
    responses={404: {"description": "Bootcamp not found", "model": ErrorResponse}},
    summary="Reviews of one bootcamp",
)
async def list_bootcamp_reviews(
    bootcamp_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    data = await review_service.list_for_bootcamp(db, bootcamp_id)
    return envelope(data, count=len(data))


@router.get(
    "/reviews/{review_id}",
    responses={404: {"description": "Review not found", "model": ErrorResponse}},
    summary="Get one review",
)
async def get_review(
    review_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await review_service.get_review(db, review_id))


@router.post(
    "/bootcamps/{bootcamp_id}/reviews",
    status_code=201,
    responses={
        400: {"description": "Already reviewed", "model": ErrorResponse},
        404: {"description": "Bootcamp not found", "model": ErrorResponse},
    },
    summary="Review a bootcamp",
)
async def add_review(
    bootcamp_id: str,
    payload: ReviewCreate,
    principal: Principal = Depends(user_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await review_service.add_review(db, principal, bootcamp_id, payload))


@router.put(
    "/reviews/{review_id}",
    responses={403: {"description": "Not the owner", "model": ErrorResponse}},
    summary="Update a review",
)
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    principal: Principal = Depends(user_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await review_service.update_review(db, principal, review_id, payload))


@router.delete(
    "/reviews/{review_id}",
    responses={403: {"description": "Not the owner", "model": ErrorResponse}},
    summary="Delete a review",
)
async def delete_review(
    review_id: str,
    principal: Principal = Depends(user_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    await review_service.delete_review(db, principal, review_id)
    return envelope({})
