"""ORM models; importing this package registers every table with Base.metadata."""

from bookreview.models.book import Book
from bookreview.models.review import Review
from bookreview.models.user import User

__all__ = ["Book", "Review", "User"]
