"""
BookReview Backend: Custom Exception Hierarchy
================================================

What:  Application-specific exceptions, one per error category of the API.
How:   Each exception carries a user-facing message, an HTTP status code and an
       optional context dict (logged, never returned to the client). The
       global exception handlers registered in main.py turn them into error
       envelopes via normalize_error().
Who:   Raised by services, dependencies and the datastore adapter.

Exception Hierarchy:
    BookReviewError (base)          → 500 Internal Server Error
    ├── RequestValidationFailed     → 400 Bad Request (field-level violations)
    ├── BadRequestError             → 400 Bad Request
    ├── AuthenticationError         → 401 Unauthorized
    │   └── TokenError              → 401 Unauthorized (invalid/expired token)
    ├── AuthorizationError          → 403 Forbidden
    ├── NotFoundError               → 404 Not Found
    ├── ConflictError               → 409 Conflict
    └── DatastoreError              → status decided by its failure kind
"""

from typing import Any, Dict, List, Optional

from bookreview.constants import Messages


class BookReviewError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:     User-facing error description (safe to return)
        status_code: HTTP status the error maps to
        context:     Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = Messages.SERVER_ERROR,
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.context = context or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class RequestValidationFailed(BookReviewError):
    """
    Raised when request input violates one or more field rules.

    Carries the ordered list of ``{"field": ..., "message": ...}`` violations,
    which is returned to the client under ``errors``.
    """

    status_code = 400

    def __init__(
        self,
        errors: List[Dict[str, str]],
        message: str = Messages.VALIDATION_FAILED,
    ):
        super().__init__(message=message, context={"errors": errors})
        self.errors = errors


class BadRequestError(BookReviewError):
    """Client request is well-formed but cannot be processed (e.g. nothing to update)."""

    status_code = 400


class AuthenticationError(BookReviewError):
    """Caller identity could not be established: missing token or vanished user."""

    status_code = 401


class TokenError(AuthenticationError):
    """
    Raised when a bearer token fails signature, expiry or claim checks.

    The message is deliberately identical for every failure reason.
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=Messages.INVALID_TOKEN, context=context)


class AuthorizationError(BookReviewError):
    """Caller is authenticated but lacks the required role."""

    status_code = 403

    def __init__(
        self,
        message: str = Messages.ADMIN_ACCESS_REQUIRED,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(BookReviewError):
    """
    Raised when a referenced entity does not exist.

    SQLAlchemy returns None for missing rows; services convert that None into
    this exception so the handler can answer 404.
    """

    status_code = 404

    def __init__(
        self,
        message: str = "The requested resource was not found",
        resource: Optional[str] = None,
        resource_id: Optional[Any] = None,
    ):
        ctx: Dict[str, Any] = {}
        if resource:
            ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class ConflictError(BookReviewError):
    """A uniqueness rule was violated (duplicate email, book combo or review)."""

    status_code = 409


class DatastoreError(BookReviewError):
    """
    Raised when the datastore rejects a statement.

    What:    Wraps a driver error after the datastore adapter classified it.
    How:     ``kind`` is a member of ``bookreview.database.DatastoreFailure``;
             normalize_error() decides status and message from it, so the
             client never sees constraint names or SQL.
    """

    def __init__(
        self,
        kind: Any,
        constraint: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(
            message=Messages.SERVER_ERROR,
            context={"kind": getattr(kind, "value", kind), "constraint": constraint, "detail": detail},
        )
        self.kind = kind
        self.constraint = constraint
        self.detail = detail
