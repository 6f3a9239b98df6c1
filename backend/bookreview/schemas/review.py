"""
BookReview Backend: Review Schemas
====================================
"""

from datetime import datetime
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bookreview.constants import Messages
from bookreview.validation import escape, int_range, length, required_field, rules, trim

RatingRule = Annotated[int, rules(int_range(1, 5, Messages.RATING_RANGE))]
CommentRule = Annotated[str, rules(trim, length(10, 1000, Messages.COMMENT_LENGTH), escape)]


class ReviewCreate(BaseModel):
    rating: RatingRule = required_field(description="Integer 1-5")
    comment: CommentRule = required_field(description="10-1000 characters")


class ReviewOut(BaseModel):
    id: int
    user_id: int
    book_id: int
    rating: int
    comment: str
    created_at: datetime
    reviewer_name: str = Field(description="Display name of the reviewing user")

    model_config = {"from_attributes": True}


class ReviewPagination(BaseModel):
    """Serialized as currentPage, totalPages, totalReviews, reviewsPerPage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_reviews: int
    reviews_per_page: int


class ReviewData(BaseModel):
    review: ReviewOut


class ReviewListData(BaseModel):
    reviews: List[ReviewOut]
    pagination: ReviewPagination
