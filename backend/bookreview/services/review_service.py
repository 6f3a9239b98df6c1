"""
BookReview Backend: Review Service
====================================

What:  Paginated review listing per book and review creation.
How:   Listing joins the reviewer's name; creation relies on the
       (user_id, book_id) unique constraint, reported by commit_changes() as a
       UNIQUE_VIOLATION, to enforce one review per user per book.
"""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookreview.constants import Messages
from bookreview.database import DatastoreFailure, Err, commit_changes
from bookreview.exceptions import ConflictError, NotFoundError
from bookreview.models.book import Book
from bookreview.models.review import Review
from bookreview.models.user import User
from bookreview.schemas.review import ReviewCreate, ReviewListData, ReviewOut, ReviewPagination
from bookreview.schemas.user import UserOut
from bookreview.services.book_service import total_pages

logger = logging.getLogger(__name__)


def _review_out(review: Review, reviewer_name: str) -> ReviewOut:
    return ReviewOut(
        id=review.id,
        user_id=review.user_id,
        book_id=review.book_id,
        rating=review.rating,
        comment=review.comment,
        created_at=review.created_at,
        reviewer_name=reviewer_name,
    )


class ReviewService:

    async def _ensure_book(self, db: AsyncSession, book_id: int) -> None:
        result = await db.execute(select(Book.id).where(Book.id == book_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError(message=Messages.BOOK_NOT_FOUND, resource="book", resource_id=book_id)

    async def list_reviews(self, db: AsyncSession, book_id: int, page: int, limit: int) -> ReviewListData:
        """Newest first; ties broken on id so pages never overlap."""
        await self._ensure_book(db, book_id)

        count_result = await db.execute(
            select(func.count(Review.id)).where(Review.book_id == book_id)
        )
        total = count_result.scalar_one()

        query = (
            select(Review, User.name)
            .join(User, User.id == Review.user_id)
            .where(Review.book_id == book_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        rows = (await db.execute(query)).all()
        reviews: List[ReviewOut] = [_review_out(review, name) for review, name in rows]

        return ReviewListData(
            reviews=reviews,
            pagination=ReviewPagination(
                current_page=page,
                total_pages=total_pages(total, limit),
                total_reviews=total,
                reviews_per_page=limit,
            ),
        )

    async def create_review(
        self,
        db: AsyncSession,
        book_id: int,
        current_user: UserOut,
        payload: ReviewCreate,
    ) -> ReviewOut:
        await self._ensure_book(db, book_id)

        review = Review(
            user_id=current_user.id,
            book_id=book_id,
            rating=payload.rating,
            comment=payload.comment,
        )
        db.add(review)

        outcome = await commit_changes(db)
        if isinstance(outcome, Err):
            if outcome.kind is DatastoreFailure.UNIQUE_VIOLATION:
                raise ConflictError(
                    message=Messages.REVIEW_EXISTS,
                    context={"user_id": current_user.id, "book_id": book_id},
                )
            raise outcome.to_exception()

        await db.refresh(review)
        logger.info("Review created: id=%s book=%s user=%s", review.id, book_id, current_user.id)
        return _review_out(review, current_user.name)


review_service = ReviewService()
