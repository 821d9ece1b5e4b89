"""
DevCamper Backend — User Service
==================================

Admin-side CRUD over identities. Access control (admin only) is enforced by
the router's dependencies; this layer only talks to the store.
"""

import logging
from typing import Any, Dict, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.security import hash_password
from devcamper.database import flush_changes
from devcamper.models.user import User
from devcamper.schemas.common import dump
from devcamper.schemas.user import UserCreate, UserResponse, UserUpdate
from devcamper.services.common import get_or_404
from devcamper.services.query_builder import Page, parse_query, run_query

logger = logging.getLogger(__name__)

# Never filterable, sortable or selectable
HIDDEN_COLUMNS = ("password_hash", "reset_password_token", "reset_password_expire")


class UserService:
    async def list_users(self, db: AsyncSession, params: Mapping[str, Any]) -> Page:
        spec = parse_query(params, User, hidden=HIDDEN_COLUMNS)
        return await run_query(db, User, spec, lambda user: dump(UserResponse, user))

    async def get_user(self, db: AsyncSession, user_id: Any) -> Dict[str, Any]:
        user = await get_or_404(db, User, user_id, "user")
        return dump(UserResponse, user)

    async def create_user(self, db: AsyncSession, payload: UserCreate) -> Dict[str, Any]:
        user = User(
            name=payload.name,
            email=payload.email,
            role=payload.role,
            password_hash=hash_password(payload.password),
        )
        db.add(user)
        await flush_changes(db, "user")
        logger.info("Admin created user %s (role=%s)", user.id, user.role)
        return dump(UserResponse, user)

    async def update_user(
        self, db: AsyncSession, user_id: Any, payload: UserUpdate
    ) -> Dict[str, Any]:
        user = await get_or_404(db, User, user_id, "user")
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        password = changes.pop("password", None)
        for key, value in changes.items():
            setattr(user, key, value)
        if password:
            user.password_hash = hash_password(password)
        await flush_changes(db, "user")
        return dump(UserResponse, user)

    async def delete_user(self, db: AsyncSession, user_id: Any) -> None:
        """Owned bootcamps, courses and reviews are not removed with the user."""
        user = await get_or_404(db, User, user_id, "user")
        await db.delete(user)
        await flush_changes(
            db,
            "user",
            integrity_message="User still owns bootcamps, courses or reviews",
        )
        logger.info("Deleted user %s", user.id)


user_service = UserService()
