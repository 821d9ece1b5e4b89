"""
DevCamper Backend — Bootcamp Route Handlers
=============================================

Public reads; writes need the publisher or admin role, and the service layer
adds the owner-or-admin check for update/delete/photo.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.dependencies import Principal, require_roles
from devcamper.database import get_db_session
from devcamper.models.user import Role
from devcamper.routes import list_query_params
from devcamper.schemas.bootcamp import BootcampCreate, BootcampUpdate
from devcamper.schemas.common import ErrorResponse, envelope
from devcamper.services.bootcamp_service import bootcamp_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bootcamps", tags=["Bootcamps"])

publisher_or_admin = require_roles(Role.PUBLISHER, Role.ADMIN)


@router.get(
    "",
    responses={400: {"description": "Invalid filter, sort or select", "model": ErrorResponse}},
    summary="List bootcamps",
    description=(
        "Filter with field=value or field[op]=value (op: gt, gte, lt, lte, in), "
        "choose fields with select=a,b, order with sort=-a,b, and page with page/limit. "
        "Each bootcamp includes its courses."
    ),
)
async def list_bootcamps(
    params: Dict[str, Any] = Depends(list_query_params),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    page = await bootcamp_service.list_bootcamps(db, params)
    return page.to_envelope()


@router.get(
    "/radius/{zipcode}/{distance}",
    responses={502: {"description": "Geocoder unavailable", "model": ErrorResponse}},
    summary="Bootcamps within a distance (miles) of a zipcode",
)
async def bootcamps_in_radius(
    zipcode: str,
    distance: float,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    data = await bootcamp_service.bootcamps_in_radius(db, zipcode, distance)
    return envelope(data, count=len(data))


@router.get(
    "/{bootcamp_id}",
    responses={404: {"description": "Bootcamp not found", "model": ErrorResponse}},
    summary="Get one bootcamp",
)
async def get_bootcamp(
    bootcamp_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await bootcamp_service.get_bootcamp(db, bootcamp_id))


@router.post(
    "",
    status_code=201,
    responses={
        400: {"description": "Invalid input or already published", "model": ErrorResponse},
        403: {"description": "Role not allowed", "model": ErrorResponse},
    },
    summary="Create a bootcamp",
)
async def create_bootcamp(
    payload: BootcampCreate,
    principal: Principal = Depends(publisher_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await bootcamp_service.create_bootcamp(db, principal, payload))


@router.put(
    "/{bootcamp_id}",
    responses={
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Bootcamp not found", "model": ErrorResponse},
    },
    summary="Update a bootcamp",
)
async def update_bootcamp(
    bootcamp_id: str,
    payload: BootcampUpdate,
    principal: Principal = Depends(publisher_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await bootcamp_service.update_bootcamp(db, principal, bootcamp_id, payload))


@router.delete(
    "/{bootcamp_id}",
    responses={
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Bootcamp not found", "model": ErrorResponse},
    },
    summary="Delete a bootcamp with its courses and reviews",
)
async def delete_bootcamp(
    bootcamp_id: str,
    principal: Principal = Depends(publisher_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    await bootcamp_service.delete_bootcamp(db, principal, bootcamp_id)
    return envelope({})


@router.put(
    "/{bootcamp_id}/photo",
    responses={
        400: {"description": "Missing, non-image or oversized file", "model": ErrorResponse},
        403: {"description": "Not the owner", "model": ErrorResponse},
    },
    summary="Upload a bootcamp photo",
)
async def upload_photo(
    bootcamp_id: str,
    file: Optional[UploadFile] = File(default=None),
    principal: Principal = Depends(publisher_or_admin),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    content = await file.read() if file is not None else None
    name = await bootcamp_service.upload_photo(
        db,
        principal,
        bootcamp_id,
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        content=content,
    )
    return envelope(name)
