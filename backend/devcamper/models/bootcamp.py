"""
DevCamper Backend — Bootcamp SQLAlchemy Model
===============================================

What:  ORM model for the `bootcamps` table.
How:   Owned by a user (user_id back-reference). Location columns are filled
       by geocoding the address when the bootcamp is created.
       average_cost and average_rating are derived aggregates recomputed by
       the course and review services after each write.

Query Patterns:
    - Public listing with filters/sort/pagination (Query Builder)
    - Radius search: bounding box on latitude/longitude, then great-circle
      distance in Python
    - One-bootcamp-per-publisher check: COUNT(*) WHERE user_id = :id
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devcamper.database import Base

if TYPE_CHECKING:
    from devcamper.models.course import Course
    from devcamper.models.review import Review

CAREERS = (
    "Web Development",
    "Mobile Development",
    "UI/UX",
    "Data Science",
    "Business",
    "Other",
)

DEFAULT_PHOTO = "no-photo.jpg"


class Bootcamp(Base):
    __tablename__ = "bootcamps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="Owning identity",
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Location (from the geocoder) ──────────────────────────────────────
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    formatted_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    street: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zipcode: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    careers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Derived aggregates ────────────────────────────────────────────────
    average_rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_cost: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    photo: Mapped[str] = mapped_column(String(255), nullable=False, default=DEFAULT_PHOTO)
    housing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    job_assistance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    job_guarantee: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    accept_gi: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # lazy="raise": related rows are only available when a query asks for them
    courses: Mapped[List["Course"]] = relationship(
        back_populates="bootcamp",
        lazy="raise",
        passive_deletes=True,
    )
    reviews: Mapped[List["Review"]] = relationship(
        back_populates="bootcamp",
        lazy="raise",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_bootcamps_created_at", created_at.desc()),
        Index("idx_bootcamps_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<Bootcamp(id={self.id}, name='{self.name}')>"
