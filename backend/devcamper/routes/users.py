"""
DevCamper Backend — User Admin Route Handlers
===============================================

Every route here requires the admin role; the check is declared once on the
router.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.dependencies import require_roles
from devcamper.database import get_db_session
from devcamper.models.user import Role
from devcamper.routes import list_query_params
from devcamper.schemas.common import ErrorResponse, envelope
from devcamper.schemas.user import UserCreate, UserUpdate
from devcamper.services.user_service import user_service

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(require_roles(Role.ADMIN))],
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Admin role required", "model": ErrorResponse},
    },
)


@router.get("", summary="List users")
async def list_users(
    params: Dict[str, Any] = Depends(list_query_params),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    page = await user_service.list_users(db, params)
    return page.to_envelope()


@router.get("/{user_id}", summary="Get one user")
async def get_user(user_id: str, db: AsyncSession = Depends(get_db_session)) -> dict:
    return envelope(await user_service.get_user(db, user_id))


@router.post("", status_code=201, summary="Create a user")
async def create_user(payload: UserCreate, db: AsyncSession = Depends(get_db_session)) -> dict:
    return envelope(await user_service.create_user(db, payload))


@router.put("/{user_id}", summary="Update a user")
async def update_user(
    user_id: str,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return envelope(await user_service.update_user(db, user_id, payload))


@router.delete("/{user_id}", summary="Delete a user")
async def delete_user(user_id: str, db: AsyncSession = Depends(get_db_session)) -> dict:
    await user_service.delete_user(db, user_id)
    return envelope({})
