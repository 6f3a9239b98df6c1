"""
BookReview Backend: Book Schemas
==================================

What:  Create/update bodies (with their field rules), the enriched book
       representation and the paginated list payload.

Create requires every field; update declares the same rules as optional so
only supplied fields are validated and applied (``model_fields_set``).
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bookreview.constants import Messages
from bookreview.validation import escape, length, optional_field, required_field, rules, trim

# ── Field rules ───────────────────────────────────────────────────────────
TitleRule = Annotated[str, rules(trim, length(2, 200, Messages.TITLE_LENGTH), escape)]
AuthorRule = Annotated[str, rules(trim, length(2, 100, Messages.AUTHOR_LENGTH), escape)]
GenreRule = Annotated[str, rules(trim, length(2, 50, Messages.GENRE_LENGTH), escape)]
DescriptionRule = Annotated[str, rules(trim, length(10, 1000, Messages.DESCRIPTION_LENGTH), escape)]


class BookCreate(BaseModel):
    title: TitleRule = required_field(description="2-200 characters")
    author: AuthorRule = required_field(description="2-100 characters")
    genre: GenreRule = required_field(description="2-50 characters")
    description: DescriptionRule = required_field(description="10-1000 characters")


class BookUpdate(BaseModel):
    title: TitleRule = optional_field()
    author: AuthorRule = optional_field()
    genre: GenreRule = optional_field()
    description: DescriptionRule = optional_field()

    def supplied_fields(self) -> Dict[str, Any]:
        """Only the fields present in the request body."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def replaces_combo(self) -> bool:
        """True when title, author and genre are all being set together."""
        return {"title", "author", "genre"} <= self.model_fields_set


class BookOut(BaseModel):
    id: int
    title: str
    author: str
    genre: str
    description: str
    created_at: datetime
    average_rating: float = Field(default=0.0, description="Mean review rating (0 with no reviews)")
    review_count: int = Field(default=0)

    model_config = {"from_attributes": True}


class BookPagination(BaseModel):
    """Serialized as currentPage, totalPages, totalBooks, booksPerPage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_books: int
    books_per_page: int


class BookData(BaseModel):
    book: BookOut


class BookListData(BaseModel):
    books: List[BookOut]
    pagination: BookPagination
