"""
DevCamper Backend — Review Service
====================================

What:  Review CRUD plus the bootcamp's average_rating aggregate (mean rating
       rounded to one decimal, None with no reviews), recomputed after every
       write in the same session.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devcamper.auth.dependencies import Principal
from devcamper.auth.policy import ensure_can_mutate
from devcamper.database import flush_changes
from devcamper.exceptions import DuplicateOwnedResource
from devcamper.models.bootcamp import Bootcamp
from devcamper.models.review import Review
from devcamper.schemas.bootcamp import BootcampSummary
from devcamper.schemas.common import dump
from devcamper.schemas.review import ReviewCreate, ReviewResponse, ReviewUpdate
from devcamper.services.common import get_or_404
from devcamper.services.query_builder import Page, parse_query, run_query

logger = logging.getLogger(__name__)


def serialize_review(review: Review) -> Dict[str, Any]:
    return dump(ReviewResponse, review)


def serialize_with_bootcamp(review: Review) -> Dict[str, Any]:
    data = serialize_review(review)
    data["bootcamp"] = dump(BootcampSummary, review.bootcamp)
    return data


class ReviewService:
    async def recompute_average_rating(
        self, db: AsyncSession, bootcamp_id: Any
    ) -> Optional[float]:
        mean = await db.scalar(
            select(func.avg(Review.rating)).where(Review.bootcamp_id == bootcamp_id)
        )
        bootcamp = await db.get(Bootcamp, bootcamp_id)
        if bootcamp is None:
            return None
        bootcamp.average_rating = round(float(mean), 1) if mean is not None else None
        await flush_changes(db, "bootcamp")
        return bootcamp.average_rating

    async def list_reviews(self, db: AsyncSession, params: Mapping[str, Any]) -> Page:
        spec = parse_query(params, Review)
        return await run_query(
            db,
            Review,
            spec,
            serialize_with_bootcamp,
            options=[selectinload(Review.bootcamp)],
            keep=("bootcamp",),
        )

    async def list_for_bootcamp(self, db: AsyncSession, bootcamp_id: Any) -> List[Dict[str, Any]]:
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")
        result = await db.execute(
            select(Review)
            .where(Review.bootcamp_id == bootcamp.id)
            .order_by(Review.created_at.desc(), Review.id)
        )
        return [serialize_review(review) for review in result.scalars().all()]

    async def get_review(self, db: AsyncSession, review_id: Any) -> Dict[str, Any]:
        review = await get_or_404(
            db, Review, review_id, "review", options=[selectinload(Review.bootcamp)]
        )
        return serialize_with_bootcamp(review)

    async def add_review(
        self,
        db: AsyncSession,
        principal: Principal,
        bootcamp_id: Any,
        payload: ReviewCreate,
    ) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: no such bootcamp
            DuplicateOwnedResource: the requester already reviewed this bootcamp
        """
        bootcamp = await get_or_404(db, Bootcamp, bootcamp_id, "bootcamp")

        existing = await db.scalar(
            select(func.count())
            .select_from(Review)
            .where(Review.bootcamp_id == bootcamp.id, Review.user_id == principal.id)
        )
        if existing:
            raise DuplicateOwnedResource(
                message=f"The user with ID {principal.id} has already reviewed this bootcamp",
                context={"bootcamp_id": str(bootcamp.id)},
            )

        review = Review(**payload.model_dump(), bootcamp_id=bootcamp.id, user_id=principal.id)
        db.add(review)
        await flush_changes(
            db,
            "review",
            integrity_message="You have already reviewed this bootcamp",
        )
        await self.recompute_average_rating(db, bootcamp.id)
        return serialize_review(review)

    async def update_review(
        self,
        db: AsyncSession,
        principal: Principal,
        review_id: Any,
        payload: ReviewUpdate,
    ) -> Dict[str, Any]:
        review = await get_or_404(db, Review, review_id, "review")
        ensure_can_mutate(review, principal, action="update")

        for key, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(review, key, value)
        await flush_changes(db, "review")
        await self.recompute_average_rating(db, review.bootcamp_id)
        return serialize_review(review)

    async def delete_review(self, db: AsyncSession, principal: Principal, review_id: Any) -> None:
        review = await get_or_404(db, Review, review_id, "review")
        ensure_can_mutate(review, principal, action="delete")

        bootcamp_id = review.bootcamp_id
        await db.delete(review)
        await flush_changes(db, "review")
        await self.recompute_average_rating(db, bootcamp_id)


review_service = ReviewService()
