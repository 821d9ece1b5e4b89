"""
DevCamper Backend — Auth Service
==================================

What:  Registration, login, password reset and self-service profile updates.
How:   Credential checks through devcamper.auth.security; the store is touched
       through the request session only. Routes turn the returned token into
       the `token` cookie.
Who:   Called by routes/auth.py.

Login failure model:
    Unknown email and wrong password both raise the same NotAuthenticated,
    so the response does not reveal which emails are registered.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.security import (
    generate_reset_token,
    hash_password,
    hash_reset_token,
    issue_token,
    verify_password,
)
from devcamper.database import flush_changes
from devcamper.exceptions import (
    NotAuthenticated,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from devcamper.models.user import User
from devcamper.schemas.auth import RegisterRequest, UpdateDetailsRequest
from devcamper.services.mail_service import mail_service

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AuthService:
    """Identity lifecycle operations. Stateless; the session is passed per call."""

    async def _find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> Tuple[User, str]:
        """
        Create an identity and sign a token for it.

        Raises:
            ValidationError: the email is already registered
        """
        user = User(
            name=payload.name,
            email=payload.email,
            role=payload.role,
            password_hash=hash_password(payload.password),
        )
        db.add(user)
        await flush_changes(db, "user")
        logger.info("Registered user %s (role=%s)", user.id, user.role)
        return user, issue_token(user.id)

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        """
        Raises:
            ValidationError: email or password missing (400)
            NotAuthenticated: unknown email or wrong password (401)
        """
        if not email or not password:
            raise ValidationError(message="Please provide an email and password")

        user = await self._find_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt for %s", email)
            raise NotAuthenticated(message=INVALID_CREDENTIALS)

        return user, issue_token(user.id)

    async def forgot_password(self, db: AsyncSession, email: str, reset_url_base: str) -> None:
        """
        Store a reset token digest and email the plain token to the user.

        Args:
            reset_url_base: URL the token is appended to in the email body

        Raises:
            NotFoundError: no user with that email
            UpstreamFailure: the email could not be sent; the reset fields
                             are cleared again
        """
        user = await self._find_by_email(db, email)
        if user is None:
            raise NotFoundError(resource="user")

        plain, digest, expires_at = generate_reset_token()
        user.reset_password_token = digest
        user.reset_password_expire = expires_at
        await flush_changes(db, "user")

        reset_url = f"{reset_url_base.rstrip('/')}/{plain}"
        body = (
            "You are receiving this email because you (or someone else) has "
            "requested the reset of a password. Please make a PUT request to:\n\n"
            f"{reset_url}"
        )
        try:
            await mail_service.send(to=user.email, subject="Password reset token", body=body)
        except UpstreamFailure:
            # The clear must survive the request-level rollback
            user.reset_password_token = None
            user.reset_password_expire = None
            await flush_changes(db, "user")
            await db.commit()
            logger.warning("Reset email to user %s failed; reset fields cleared", user.id)
            raise

    async def reset_password(
        self, db: AsyncSession, plain_token: str, new_password: str
    ) -> Tuple[User, str]:
        """
        Consume a reset token.

        Raises:
            ValidationError: unknown or expired token ("Invalid token")
        """
        result = await db.execute(
            select(User).where(User.reset_password_token == hash_reset_token(plain_token))
        )
        user = result.scalar_one_or_none()
        now = datetime.now(timezone.utc)
        if (
            user is None
            or user.reset_password_expire is None
            or _as_utc(user.reset_password_expire) <= now
        ):
            raise ValidationError(message="Invalid token")

        user.password_hash = hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expire = None
        await flush_changes(db, "user")
        logger.info("Password reset for user %s", user.id)
        return user, issue_token(user.id)

    async def update_details(
        self, db: AsyncSession, user: User, payload: UpdateDetailsRequest
    ) -> User:
        """Only name and email can be changed here; role and password cannot."""
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        for key, value in changes.items():
            setattr(user, key, value)
        await flush_changes(db, "user")
        return user

    async def update_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: str,
        new_password: str,
    ) -> Tuple[User, str]:
        """
        Raises:
            NotAuthenticated: current password does not match
        """
        if not verify_password(current_password, user.password_hash):
            raise NotAuthenticated(message="Password is incorrect")

        user.password_hash = hash_password(new_password)
        await flush_changes(db, "user")
        return user, issue_token(user.id)


auth_service = AuthService()
