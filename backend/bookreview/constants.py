"""
BookReview Backend: Shared Constants
======================================

Response messages, pagination defaults, sort allow-list and the names of the
unique constraints the datastore enforces. Messages are part of the public API
contract (clients display them verbatim).
"""


class Messages:
    # ── Success ───────────────────────────────────────────────────────────
    USER_REGISTERED = "User registered successfully"
    LOGIN_SUCCESSFUL = "Login successful"
    USER_RETRIEVED = "User retrieved successfully"
    BOOKS_RETRIEVED = "Books retrieved successfully"
    BOOK_RETRIEVED = "Book retrieved successfully"
    BOOK_CREATED = "Book created successfully"
    BOOK_UPDATED = "Book updated successfully"
    BOOK_DELETED = "Book deleted successfully"
    REVIEWS_RETRIEVED = "Reviews retrieved successfully"
    REVIEW_ADDED = "Review added successfully"
    SERVER_RUNNING = "Server is running!"

    # ── Errors ────────────────────────────────────────────────────────────
    SERVER_ERROR = "Server error"
    ROUTE_NOT_FOUND = "Route not found"
    METHOD_NOT_ALLOWED = "Method not allowed"
    VALIDATION_FAILED = "Validation failed"
    ACCESS_TOKEN_REQUIRED = "Access token required"
    INVALID_TOKEN = "Invalid token"
    USER_NOT_FOUND = "User not found"
    ADMIN_ACCESS_REQUIRED = "Admin access required"
    INVALID_CREDENTIALS = "Invalid credentials"
    USER_EXISTS = "User with this email already exists"
    BOOK_NOT_FOUND = "Book not found"
    BOOK_EXISTS = "A book with the same title, author, and genre already exists."
    REVIEW_EXISTS = "You have already reviewed this book"
    RESOURCE_EXISTS = "Resource already exists"
    NO_FIELDS_TO_UPDATE = "No fields to update"
    REFERENCED_RECORD_MISSING = "Referenced record does not exist"
    REQUIRED_FIELD_MISSING = "Required field is missing"
    INVALID_FIELD_VALUE = "Invalid field value"
    INVALID_REQUEST_BODY = "Request body must be a valid JSON object"

    # ── Validation ────────────────────────────────────────────────────────
    NAME_MIN_LENGTH = "Name must be at least 3 characters"
    EMAIL_INVALID = "Please provide a valid email"
    PASSWORD_MIN_LENGTH = "Password must be at least 6 characters"
    PASSWORD_REQUIRED = "Password is required"
    TITLE_LENGTH = "Title must be 2-200 characters"
    AUTHOR_LENGTH = "Author must be 2-100 characters"
    GENRE_LENGTH = "Genre must be 2-50 characters"
    DESCRIPTION_LENGTH = "Description must be 10-1000 characters"
    RATING_RANGE = "Rating must be between 1 and 5"
    COMMENT_LENGTH = "Comment must be between 10 and 1000 characters"
    PAGE_INVALID = "Page must be a positive integer"
    LIMIT_INVALID = "Limit must be between 1 and 100"
    ID_INVALID = "ID must be an integer"


class Roles:
    USER = "user"
    ADMIN = "admin"


# ── Pagination ────────────────────────────────────────────────────────────
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Keeps (page - 1) * limit within a 64-bit OFFSET
MAX_PAGE = 2**31 - 1

# ── Sorting ───────────────────────────────────────────────────────────────
SORT_FIELDS = ("title", "author", "genre", "created_at", "average_rating")
SORT_ORDERS = ("ASC", "DESC")
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_ORDER = "DESC"

# ── Unique constraint names (must match models and migrations) ────────────
USER_EMAIL_CONSTRAINT = "users_email_key"
BOOK_UNIQUE_CONSTRAINT = "unique_book_combo"
REVIEW_UNIQUE_CONSTRAINT = "unique_user_book_review"
REVIEW_RATING_CONSTRAINT = "check_rating_range"
