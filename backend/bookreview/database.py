"""
BookReview Backend: Datastore Adapter
=======================================

What:  Async SQLAlchemy engine/session lifecycle, the FastAPI session
       dependency, and the translation of driver integrity errors into a
       closed set of failure kinds.
How:   The application factory builds one ``Database`` per app and stores it on
       ``app.state.database``. Each request gets its own session. Services
       end every write with ``commit_changes()``, which commits before the
       response is built and returns ``Ok`` or ``Err`` instead of letting
       integrity errors escape. Anything left uncommitted when the request ends
       is rolled back, so multi-statement operations (delete reviews then book,
       check then update) are atomic.

Connection Pooling (PostgreSQL):
    pool_size=20, max_overflow=10, pool_pre_ping, pool_recycle=3600.
    SQLite URLs (used by the test-suite) keep SQLAlchemy's default pool.

Failure kinds (DatastoreFailure):
    UNIQUE_VIOLATION       SQLSTATE 23505
    FOREIGN_KEY_VIOLATION  SQLSTATE 23503
    NOT_NULL_VIOLATION     SQLSTATE 23502
    CHECK_VIOLATION        SQLSTATE 23514
    OTHER                  anything else the driver reports as integrity error
"""

import enum
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Generic, Optional, TypeVar, Union

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bookreview.config import Settings
from bookreview.constants import (
    BOOK_UNIQUE_CONSTRAINT,
    REVIEW_UNIQUE_CONSTRAINT,
    USER_EMAIL_CONSTRAINT,
)
from bookreview.exceptions import DatastoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with this metadata, which Alembic reads for
    migrations and the test-suite uses for create_all().
    """
    pass


# ══════════════════════════════════════════════════════════════════════════
# Failure classification
# ══════════════════════════════════════════════════════════════════════════

class DatastoreFailure(str, enum.Enum):
    UNIQUE_VIOLATION = "unique_violation"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    NOT_NULL_VIOLATION = "not_null_violation"
    CHECK_VIOLATION = "check_violation"
    OTHER = "other"


_SQLSTATE_KINDS = {
    "23505": DatastoreFailure.UNIQUE_VIOLATION,
    "23503": DatastoreFailure.FOREIGN_KEY_VIOLATION,
    "23502": DatastoreFailure.NOT_NULL_VIOLATION,
    "23514": DatastoreFailure.CHECK_VIOLATION,
}

# SQLite reports failed columns instead of constraint names
_SQLITE_MESSAGE_KINDS = (
    ("UNIQUE constraint failed", DatastoreFailure.UNIQUE_VIOLATION),
    ("FOREIGN KEY constraint failed", DatastoreFailure.FOREIGN_KEY_VIOLATION),
    ("NOT NULL constraint failed", DatastoreFailure.NOT_NULL_VIOLATION),
    ("CHECK constraint failed", DatastoreFailure.CHECK_VIOLATION),
)

_SQLITE_UNIQUE_TABLES = {
    "users": USER_EMAIL_CONSTRAINT,
    "books": BOOK_UNIQUE_CONSTRAINT,
    "reviews": REVIEW_UNIQUE_CONSTRAINT,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: Optional[T] = None


@dataclass(frozen=True)
class Err:
    """A write rejected by the datastore, already classified."""

    kind: DatastoreFailure
    constraint: Optional[str] = None
    detail: Optional[str] = None

    def to_exception(self) -> DatastoreError:
        return DatastoreError(kind=self.kind, constraint=self.constraint, detail=self.detail)


Result = Union[Ok, Err]


def _sqlstate_of(orig: Any) -> Optional[str]:
    """Reads the SQLSTATE from asyncpg (adapted or raw) or psycopg errors."""
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _constraint_of(orig: Any) -> Optional[str]:
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
        diag = getattr(candidate, "diag", None)
        if diag is not None and getattr(diag, "constraint_name", None):
            return diag.constraint_name
    return None


def _classify_sqlite(message: str) -> Err:
    for prefix, kind in _SQLITE_MESSAGE_KINDS:
        if prefix not in message:
            continue
        target = message.split(prefix, 1)[1].lstrip(": ").strip()
        constraint = None
        if kind is DatastoreFailure.UNIQUE_VIOLATION and target:
            table = target.split(".", 1)[0]
            constraint = _SQLITE_UNIQUE_TABLES.get(table)
        elif kind is DatastoreFailure.CHECK_VIOLATION and target:
            constraint = target
        return Err(kind=kind, constraint=constraint, detail=message)
    return Err(kind=DatastoreFailure.OTHER, detail=message)


def classify_integrity_error(exc: IntegrityError) -> Err:
    """
    Translate a driver integrity error into an ``Err``.

    PostgreSQL drivers expose SQLSTATE and constraint name; SQLite only has a
    message, which is mapped onto the same constraint names the models declare.
    """
    orig = exc.orig if exc.orig is not None else exc
    sqlstate = _sqlstate_of(orig)
    if sqlstate is not None:
        return Err(
            kind=_SQLSTATE_KINDS.get(sqlstate, DatastoreFailure.OTHER),
            constraint=_constraint_of(orig),
            detail=str(orig),
        )
    return _classify_sqlite(str(orig))


async def commit_changes(session: AsyncSession) -> Result:
    """
    Commit pending writes and report constraint failures as values.

    Services call this before returning, so a failed commit surfaces as an
    error response instead of after a success has been sent. After an ``Err``
    the session transaction is unusable; callers raise and let the session
    scope roll it back. Non-integrity driver errors propagate.
    """
    try:
        await session.commit()
    except IntegrityError as exc:
        failure = classify_integrity_error(exc)
        logger.info(
            "Write rejected by datastore: kind=%s constraint=%s",
            failure.kind.value,
            failure.constraint,
        )
        return failure
    return Ok()


# ══════════════════════════════════════════════════════════════════════════
# Engine & session lifecycle
# ══════════════════════════════════════════════════════════════════════════

class Database:
    """
    Owns the async engine and session factory for one application instance.

    Lifecycle:
        Created by create_app(), disposed by the lifespan shutdown hook.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        engine_kwargs: dict = {"echo": echo}
        if not url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=pool_pre_ping,
                pool_recycle=3600,
            )
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        # expire_on_commit=False: response models read attributes after commit
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "Database":
        return cls(
            app_settings.database_url,
            pool_size=app_settings.db_pool_size,
            max_overflow=app_settings.db_max_overflow,
            pool_pre_ping=app_settings.db_pool_pre_ping,
            echo=app_settings.log_level == "DEBUG",
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Transaction scope for work outside a request (seeding, scripts):
        commit on success, roll back on any exception.

        The session is always closed, returning its connection to the pool.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Runs SELECT 1; used by the health check."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            logger.warning("Database ping failed: %s", exc)
            return False
        return True

    async def create_all(self) -> None:
        # Import models so they register with Base.metadata
        from bookreview import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Closes all pooled connections."""
        await self.engine.dispose()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides one session per request.

    It never commits: this exit code runs after the response is sent, so
    writes are committed by the services through commit_changes(). Whatever
    is still pending here is rolled back.

    Example usage in a route:
        @router.get("/books")
        async def list_books(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()
