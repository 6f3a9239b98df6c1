"""
BookReview Backend: Review SQLAlchemy Model
=============================================

What:  ORM model for the `reviews` table.

Business Rules:
    - One review per (user, book) pair (`unique_user_book_review`)
    - Rating is an integer between 1 and 5 (`check_rating_range`)
    - Never updated or deleted individually; removed together with their book
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from bookreview.constants import REVIEW_RATING_CONSTRAINT, REVIEW_UNIQUE_CONSTRAINT
from bookreview.database import Base


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # No ON DELETE CASCADE: BookService deletes a book's reviews explicitly
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )
    book_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("books.id"),
        nullable=False,
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name=REVIEW_UNIQUE_CONSTRAINT),
        CheckConstraint("rating >= 1 AND rating <= 5", name=REVIEW_RATING_CONSTRAINT),
        Index("idx_reviews_book_id_created_at", "book_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, rating={self.rating})>"
