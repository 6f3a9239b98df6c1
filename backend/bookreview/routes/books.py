"""
BookReview Backend: Book & Review Route Handlers
==================================================

What:  Book catalogue endpoints and the nested review endpoints.
Who:   Listing and detail are public; create/update/delete require an admin
       token; posting a review requires any valid token.

Dependency order on gated routes: authentication, then the admin check, then
query/path/body validation. An anonymous request with a bad body therefore
gets 401, not 400.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookreview.constants import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, MAX_PAGE, Messages
from bookreview.database import get_db_session
from bookreview.dependencies import CurrentUser, get_current_user, require_admin
from bookreview.schemas.book import BookCreate, BookData, BookListData, BookUpdate
from bookreview.schemas.common import ApiResponse, ErrorResponse
from bookreview.schemas.review import ReviewCreate, ReviewData, ReviewListData
from bookreview.services.book_service import book_service
from bookreview.services.review_service import review_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["Books"])

_AUTH_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}
_ADMIN_ERRORS = {
    **_AUTH_ERRORS,
    403: {"description": "Admin access required", "model": ErrorResponse},
}
_NOT_FOUND = {404: {"description": "Book not found", "model": ErrorResponse}}
_INVALID = {400: {"description": "Validation failed", "model": ErrorResponse}}


PageParam = Annotated[int, Query(ge=1, le=MAX_PAGE, description="Page number (1-based)")]
LimitParam = Annotated[int, Query(ge=1, le=MAX_LIMIT, description="Items per page (1-100)")]
BookIdParam = Annotated[int, Path(description="Book id")]


# ══════════════════════════════════════════════════════════════════════════
# Books
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "",
    response_model=ApiResponse[BookListData],
    responses=_INVALID,
    summary="List books",
    description=(
        "Paginated book list with average rating and review count. Filters are "
        "case-insensitive substring matches; an unknown sortBy or sortOrder falls "
        "back to created_at DESC."
    ),
)
async def list_books(
    page: PageParam = DEFAULT_PAGE,
    limit: LimitParam = DEFAULT_LIMIT,
    genre: Optional[str] = Query(default=None, description="Genre contains"),
    author: Optional[str] = Query(default=None, description="Author contains"),
    title: Optional[str] = Query(default=None, description="Title contains"),
    sort_by: Optional[str] = Query(
        default=None,
        alias="sortBy",
        description="title | author | genre | created_at | average_rating",
    ),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder", description="ASC | DESC"),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookListData]:
    data = await book_service.list_books(
        db,
        page=page,
        limit=limit,
        genre=genre,
        author=author,
        title=title,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse[BookListData](message=Messages.BOOKS_RETRIEVED, data=data)


@router.get(
    "/{book_id}",
    response_model=ApiResponse[BookData],
    responses={**_INVALID, **_NOT_FOUND},
    summary="Get a book",
)
async def get_book(
    book_id: BookIdParam,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookData]:
    book = await book_service.get_book(db, book_id)
    return ApiResponse[BookData](message=Messages.BOOK_RETRIEVED, data=BookData(book=book))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[BookData],
    responses={
        **_INVALID,
        **_ADMIN_ERRORS,
        409: {"description": "Same title, author and genre already exist", "model": ErrorResponse},
    },
    summary="Create a book (admin)",
    dependencies=[Depends(require_admin)],
)
async def create_book(
    payload: BookCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookData]:
    book = await book_service.create_book(db, payload)
    return ApiResponse[BookData](message=Messages.BOOK_CREATED, data=BookData(book=book))


@router.put(
    "/{book_id}",
    response_model=ApiResponse[BookData],
    responses={
        **_INVALID,
        **_ADMIN_ERRORS,
        **_NOT_FOUND,
        409: {"description": "Update collides with another book", "model": ErrorResponse},
    },
    summary="Update a book (admin)",
    description="Partial update: only the fields present in the body are changed.",
    dependencies=[Depends(require_admin)],
)
async def update_book(
    payload: BookUpdate,
    book_id: BookIdParam,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookData]:
    book = await book_service.update_book(db, book_id, payload)
    return ApiResponse[BookData](message=Messages.BOOK_UPDATED, data=BookData(book=book))


@router.delete(
    "/{book_id}",
    response_model=ApiResponse[None],
    responses={**_INVALID, **_ADMIN_ERRORS, **_NOT_FOUND},
    summary="Delete a book and its reviews (admin)",
    dependencies=[Depends(require_admin)],
)
async def delete_book(
    book_id: BookIdParam,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await book_service.delete_book(db, book_id)
    return ApiResponse[None](message=Messages.BOOK_DELETED)


# ══════════════════════════════════════════════════════════════════════════
# Reviews
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "/{book_id}/reviews",
    response_model=ApiResponse[ReviewListData],
    responses={**_INVALID, **_NOT_FOUND},
    summary="List reviews for a book",
    description="Newest first, each with the reviewer's name.",
)
async def list_reviews(
    book_id: BookIdParam,
    page: PageParam = DEFAULT_PAGE,
    limit: LimitParam = DEFAULT_LIMIT,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ReviewListData]:
    data = await review_service.list_reviews(db, book_id, page=page, limit=limit)
    return ApiResponse[ReviewListData](message=Messages.REVIEWS_RETRIEVED, data=data)


@router.post(
    "/{book_id}/reviews",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ReviewData],
    responses={
        **_INVALID,
        **_AUTH_ERRORS,
        **_NOT_FOUND,
        409: {"description": "Already reviewed by this user", "model": ErrorResponse},
    },
    summary="Review a book",
)
async def create_review(
    payload: ReviewCreate,
    book_id: BookIdParam,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[ReviewData]:
    review = await review_service.create_review(db, book_id, current_user, payload)
    return ApiResponse[ReviewData](message=Messages.REVIEW_ADDED, data=ReviewData(review=review))
