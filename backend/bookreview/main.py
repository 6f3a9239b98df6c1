"""
BookReview Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app(settings) builds the Database for that app, registers the
       middleware chain, the exception handlers and the routers.
Who:   uvicorn (`uvicorn bookreview.main:app`) and the test-suite, which
       builds its own app around a SQLite database.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌──────┐ ┌──────┐        │
    │  │  Req ID  │→│ Logging  │→│ GZip │→│ CORS │        │
    │  └──────────┘ └──────────┘ └──────┘ └──────┘        │
    │                                                     │
    │  Routes:                                            │
    │  GET /   /auth/*   /users/me   /books/*             │
    │                                                     │
    │  Exception Handlers → normalize_error() → envelope  │
    └─────────────────────────────────────────────────────┘

Error normalization (normalize_error):
    DatastoreError UNIQUE_VIOLATION       → 409, message by constraint name
    DatastoreError FOREIGN_KEY_VIOLATION  → 400 "Referenced record does not exist"
    DatastoreError NOT_NULL_VIOLATION     → 400 "Required field is missing"
    DatastoreError CHECK_VIOLATION        → 400 "Invalid field value"
    raw IntegrityError                    → classified first, then as above
    TokenError / jwt.PyJWTError           → 401 "Invalid token"
    other BookReviewError                 → its own status and message
    HTTPException 404 / 405               → "Route not found" / "Method not allowed"
    anything else                         → 500 "Server error"

Lifecycle:
    Startup:  logging, configuration check, optional create_all()
    Shutdown: dispose the database engine
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import jwt
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookreview import __version__
from bookreview.config import Settings, settings
from bookreview.constants import (
    BOOK_UNIQUE_CONSTRAINT,
    REVIEW_UNIQUE_CONSTRAINT,
    USER_EMAIL_CONSTRAINT,
    Messages,
)
from bookreview.database import Database, DatastoreFailure, classify_integrity_error
from bookreview.exceptions import BookReviewError, DatastoreError, RequestValidationFailed
from bookreview.middleware.logging import RequestLoggingMiddleware, caller_id
from bookreview.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from bookreview.routes import auth, books, health, users
from bookreview.validation import collect_violations

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(app_settings: Settings) -> None:
    """
    Configure the root logger once per process.

    Format: 2026-01-15T12:00:00 [INFO] bookreview.access: GET /books 200 ...
    """
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings
    database: Database = app.state.database

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings)
    logger.info("=" * 60)
    logger.info("BookReview Backend %s starting (%s)", __version__, app_settings.environment)

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        # Logged, not fatal: the health check still reports the service
        logger.error("Configuration error: %s", str(e))

    if app_settings.create_tables_on_startup:
        await database.create_all()
        logger.info("Database tables ensured (create_all)")

    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("BookReview Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Error Normalization
# ══════════════════════════════════════════════════════════════════════════

_CONFLICT_MESSAGES = {
    USER_EMAIL_CONSTRAINT: Messages.USER_EXISTS,
    BOOK_UNIQUE_CONSTRAINT: Messages.BOOK_EXISTS,
    REVIEW_UNIQUE_CONSTRAINT: Messages.REVIEW_EXISTS,
}

# Every DatastoreFailure member has an entry
_FAILURE_RESPONSES: Dict[DatastoreFailure, Tuple[int, str]] = {
    DatastoreFailure.UNIQUE_VIOLATION: (409, Messages.RESOURCE_EXISTS),
    DatastoreFailure.FOREIGN_KEY_VIOLATION: (400, Messages.REFERENCED_RECORD_MISSING),
    DatastoreFailure.NOT_NULL_VIOLATION: (400, Messages.REQUIRED_FIELD_MISSING),
    DatastoreFailure.CHECK_VIOLATION: (400, Messages.INVALID_FIELD_VALUE),
    DatastoreFailure.OTHER: (500, Messages.SERVER_ERROR),
}

_HTTP_MESSAGES = {
    404: Messages.ROUTE_NOT_FOUND,
    405: Messages.METHOD_NOT_ALLOWED,
}


def normalize_error(exc: BaseException) -> Tuple[int, str]:
    """Map any raised error to the (status, message) pair sent to the client."""
    if isinstance(exc, IntegrityError):
        exc = classify_integrity_error(exc).to_exception()

    if isinstance(exc, DatastoreError):
        status, message = _FAILURE_RESPONSES.get(exc.kind, (500, Messages.SERVER_ERROR))
        if exc.kind is DatastoreFailure.UNIQUE_VIOLATION:
            message = _CONFLICT_MESSAGES.get(exc.constraint, message)
        return status, message

    if isinstance(exc, jwt.PyJWTError):
        return 401, Messages.INVALID_TOKEN

    if isinstance(exc, BookReviewError):
        return exc.status_code, exc.message

    if isinstance(exc, StarletteHTTPException):
        return exc.status_code, _HTTP_MESSAGES.get(exc.status_code, str(exc.detail))

    return 500, Messages.SERVER_ERROR


def error_response(
    request: Request,
    status: int,
    message: str,
    errors: Optional[List[Dict[str, str]]] = None,
    exc: Optional[BaseException] = None,
) -> JSONResponse:
    """Build the failure envelope; the trace is only included outside production."""
    content: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        content["errors"] = errors

    app_settings: Settings = request.app.state.settings
    if exc is not None and not app_settings.is_production:
        content["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    rid = request_id_var.get("")
    headers = {REQUEST_ID_HEADER: rid} if rid else None
    return JSONResponse(status_code=status, content=content, headers=headers)


def _log_failure(request: Request, status: int, message: str, exc: BaseException) -> None:
    rid = request_id_var.get("")
    args = (rid, request.method, request.url.path, caller_id(request), status, message)
    if status >= 500:
        logger.error("[%s] %s %s user=%s failed %d: %s", *args, exc_info=exc)
    else:
        context = getattr(exc, "context", None)
        logger.warning("[%s] %s %s user=%s rejected %d: %s %s", *args, context or "")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Every failure, from dependencies, validation or handlers, ends up in one
    of these handlers and leaves as the same envelope.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        violations = collect_violations(exc.errors())
        logger.info(
            "[%s] %s %s validation failed: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            [v["field"] for v in violations],
        )
        return error_response(request, 400, Messages.VALIDATION_FAILED, errors=violations)

    @app.exception_handler(RequestValidationFailed)
    async def handle_validation_failed(request: Request, exc: RequestValidationFailed):
        logger.info(
            "[%s] %s %s validation failed: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            [v["field"] for v in exc.errors],
        )
        return error_response(request, exc.status_code, exc.message, errors=exc.errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        status, message = normalize_error(exc)
        _log_failure(request, status, message, exc)
        return error_response(request, status, message)

    @app.exception_handler(BookReviewError)
    async def handle_app_error(request: Request, exc: BookReviewError):
        status, message = normalize_error(exc)
        _log_failure(request, status, message, exc)
        return error_response(request, status, message, exc=exc if status >= 500 else None)

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        status, message = normalize_error(exc)
        _log_failure(request, status, message, exc)
        return error_response(request, status, message, exc=exc if status >= 500 else None)

    @app.exception_handler(jwt.PyJWTError)
    async def handle_token_error(request: Request, exc: jwt.PyJWTError):
        status, message = normalize_error(exc)
        _log_failure(request, status, message, exc)
        return error_response(request, status, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        status, message = normalize_error(exc)
        _log_failure(request, status, message, exc)
        return error_response(request, status, message, exc=exc)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble an application around one Database.

    Each call builds an independent app with its own engine, so tests can
    create apps against throwaway databases.
    """
    app_settings = app_settings or settings

    app = FastAPI(
        title="BookReview API",
        description="Books, reviews and user accounts with token authentication.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.database = Database.from_settings(app_settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(books.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
