"""
BookReview Backend: Book Service
==================================

What:  Listing, retrieval and admin-side create/update/delete of books.
How:   Every read enriches books with `average_rating` and `review_count`,
       computed from reviews at query time:

           SELECT b.*, COALESCE(AVG(r.rating), 0) AS average_rating,
                  COUNT(r.id) AS review_count
           FROM books b LEFT JOIN reviews r ON r.book_id = b.id
           WHERE ... GROUP BY b.id ORDER BY <sort> LIMIT :limit OFFSET :offset

Listing rules:
    - genre/author/title: case-insensitive substring filters (LIKE wildcards
      in the input are matched literally)
    - sortBy outside the allow-list, or sortOrder other than ASC/DESC, falls
      back to created_at DESC without an error
    - ties are broken on id in the same direction so pages never overlap

Each write ends with bookreview.database.commit_changes(), so multi-statement
operations commit together before the response is built.
"""

import logging
import math
from typing import Any, List, Optional, Tuple

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookreview.constants import (
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
    SORT_FIELDS,
    SORT_ORDERS,
    Messages,
)
from bookreview.database import DatastoreFailure, Err, commit_changes
from bookreview.exceptions import BadRequestError, ConflictError, NotFoundError
from bookreview.models.book import Book
from bookreview.models.review import Review
from bookreview.schemas.book import BookCreate, BookListData, BookOut, BookPagination, BookUpdate

logger = logging.getLogger(__name__)


def resolve_sort(sort_by: Optional[str], sort_order: Optional[str]) -> Tuple[str, str]:
    """Map raw query values onto the allow-list, falling back to the default."""
    field = sort_by if sort_by in SORT_FIELDS else DEFAULT_SORT_FIELD
    order = (sort_order or "").upper()
    if order not in SORT_ORDERS:
        order = DEFAULT_SORT_ORDER
    return field, order


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def _enriched_books() -> Tuple[Select, Any]:
    average = func.coalesce(func.avg(Review.rating), 0).label("average_rating")
    count = func.count(Review.id).label("review_count")
    query = (
        select(Book, average, count)
        .outerjoin(Review, Review.book_id == Book.id)
        .group_by(Book.id)
    )
    return query, average


def _book_out(book: Book, average: Any = 0, count: Any = 0) -> BookOut:
    return BookOut(
        id=book.id,
        title=book.title,
        author=book.author,
        genre=book.genre,
        description=book.description,
        created_at=book.created_at,
        average_rating=round(float(average or 0), 2),
        review_count=int(count or 0),
    )


class BookService:

    async def _require_book(self, db: AsyncSession, book_id: int) -> Book:
        result = await db.execute(select(Book).where(Book.id == book_id))
        book = result.scalar_one_or_none()
        if book is None:
            raise NotFoundError(message=Messages.BOOK_NOT_FOUND, resource="book", resource_id=book_id)
        return book

    async def _combo_taken(
        self,
        db: AsyncSession,
        title: str,
        author: str,
        genre: str,
        exclude_id: Optional[int] = None,
    ) -> bool:
        query = select(Book.id).where(
            Book.title == title,
            Book.author == author,
            Book.genre == genre,
        )
        if exclude_id is not None:
            query = query.where(Book.id != exclude_id)
        result = await db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_books(
        self,
        db: AsyncSession,
        page: int,
        limit: int,
        genre: Optional[str] = None,
        author: Optional[str] = None,
        title: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> BookListData:
        filters = []
        if genre:
            filters.append(Book.genre.icontains(genre, autoescape=True))
        if author:
            filters.append(Book.author.icontains(author, autoescape=True))
        if title:
            filters.append(Book.title.icontains(title, autoescape=True))

        count_result = await db.execute(select(func.count(Book.id)).where(*filters))
        total = count_result.scalar_one()

        field, order = resolve_sort(sort_by, sort_order)
        query, average = _enriched_books()
        sort_columns = {
            "title": Book.title,
            "author": Book.author,
            "genre": Book.genre,
            "created_at": Book.created_at,
            "average_rating": average,
        }
        column = sort_columns[field]
        if order == "ASC":
            query = query.order_by(column.asc(), Book.id.asc())
        else:
            query = query.order_by(column.desc(), Book.id.desc())

        query = query.where(*filters).limit(limit).offset((page - 1) * limit)
        rows = (await db.execute(query)).all()
        books: List[BookOut] = [_book_out(book, avg, cnt) for book, avg, cnt in rows]

        return BookListData(
            books=books,
            pagination=BookPagination(
                current_page=page,
                total_pages=total_pages(total, limit),
                total_books=total,
                books_per_page=limit,
            ),
        )

    async def get_book(self, db: AsyncSession, book_id: int) -> BookOut:
        query, _ = _enriched_books()
        result = await db.execute(query.where(Book.id == book_id))
        row = result.first()
        if row is None:
            raise NotFoundError(message=Messages.BOOK_NOT_FOUND, resource="book", resource_id=book_id)
        book, average, count = row
        return _book_out(book, average, count)

    async def create_book(self, db: AsyncSession, payload: BookCreate) -> BookOut:
        if await self._combo_taken(db, payload.title, payload.author, payload.genre):
            raise ConflictError(message=Messages.BOOK_EXISTS)

        book = Book(
            title=payload.title,
            author=payload.author,
            genre=payload.genre,
            description=payload.description,
        )
        db.add(book)
        outcome = await commit_changes(db)
        if isinstance(outcome, Err):
            if outcome.kind is DatastoreFailure.UNIQUE_VIOLATION:
                raise ConflictError(message=Messages.BOOK_EXISTS)
            raise outcome.to_exception()

        # Reload server-side values so the response matches later reads
        await db.refresh(book)
        logger.info("Book created: id=%s title=%r", book.id, book.title)
        return _book_out(book)

    async def update_book(self, db: AsyncSession, book_id: int, payload: BookUpdate) -> BookOut:
        """
        Partial update: only fields present in the body are applied.

        The explicit duplicate check runs only when title, author and genre are
        all supplied; any other collision is caught by the unique constraint.
        """
        book = await self._require_book(db, book_id)

        if payload.replaces_combo() and await self._combo_taken(
            db, payload.title, payload.author, payload.genre, exclude_id=book_id
        ):
            raise ConflictError(message=Messages.BOOK_EXISTS)

        fields = payload.supplied_fields()
        if not fields:
            raise BadRequestError(message=Messages.NO_FIELDS_TO_UPDATE)

        for name, value in fields.items():
            setattr(book, name, value)

        outcome = await commit_changes(db)
        if isinstance(outcome, Err):
            if outcome.kind is DatastoreFailure.UNIQUE_VIOLATION:
                raise ConflictError(message=Messages.BOOK_EXISTS)
            raise outcome.to_exception()

        logger.info("Book updated: id=%s fields=%s", book_id, sorted(fields))
        return await self.get_book(db, book_id)

    async def delete_book(self, db: AsyncSession, book_id: int) -> None:
        """Deletes the book's reviews first, then the book, in one transaction."""
        await self._require_book(db, book_id)

        reviews = await db.execute(delete(Review).where(Review.book_id == book_id))
        await db.execute(delete(Book).where(Book.id == book_id))

        outcome = await commit_changes(db)
        if isinstance(outcome, Err):
            raise outcome.to_exception()

        logger.info("Book deleted: id=%s (with %s reviews)", book_id, reviews.rowcount)


book_service = BookService()
