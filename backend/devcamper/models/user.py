"""
DevCamper Backend — User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table (the Identity record).
Who:   Auth and user services; the authorization gate resolves tokens to rows here.

Lifecycle:
    1. Created at registration (or by an admin through /users)
    2. password_hash replaced on update-password and reset-password
    3. reset_password_token / reset_password_expire set by forgot-password,
       cleared by a successful reset or when the email could not be sent
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from devcamper.database import Base


class Role(str, enum.Enum):
    """Closed set of roles an identity can hold."""

    USER = "user"
    PUBLISHER = "publisher"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Stored lower-cased; uniqueness enforced by the index
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.USER.value,
        comment="One of: user, publisher, admin",
    )

    # Never serialized; schemas do not expose it
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # sha256 hex digest of the token that was emailed to the user
    reset_password_token: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        index=True,
    )
    reset_password_expire: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
