"""
BookReview Backend: Book SQLAlchemy Model
===========================================

What:  ORM model for the `books` table.
Who:   Created, updated and deleted by admins; read by everyone.

Table Design:
    - (title, author, genre) is unique (`unique_book_combo`)
    - text columns are unbounded: lengths are enforced by the validation layer
      before escaping, and HTML escaping can lengthen the stored value
    - average rating and review count are NOT stored; BookService computes
      them at read time with a LEFT JOIN on reviews
    - Index on created_at DESC serves the default listing order
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from bookreview.constants import BOOK_UNIQUE_CONSTRAINT
from bookreview.database import Base


class Book(Base):
    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(Text, nullable=False)
    genre: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("title", "author", "genre", name=BOOK_UNIQUE_CONSTRAINT),
        Index("idx_books_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', author='{self.author}')>"
