"""
BookReview Backend: Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Integration tests run the real application against a throwaway SQLite
       file (aiosqlite) created per test; unit tests use a mocked session.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session: AsyncMock session for service unit tests
    ├── test_settings:   Settings pointing at tmp_path/test.db
    ├── app:             create_app(test_settings) with tables created
    ├── test_client:     HTTPX AsyncClient over ASGITransport
    ├── register_user:   POST /auth/register helper returning the JSON body
    ├── user_token:      token of a freshly registered regular user
    ├── admin_token:     token of an admin inserted directly into the database
    └── create_book:     POST /books helper (as admin) returning the book
"""

import os
from datetime import timedelta
from typing import Any, AsyncGenerator, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep the module-level app in bookreview.main away from PostgreSQL
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production-use-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["ENVIRONMENT"] = "test"

from bookreview.config import Settings  # noqa: E402
from bookreview.constants import Roles  # noqa: E402
from bookreview.main import create_app  # noqa: E402
from bookreview.models.user import User  # noqa: E402
from bookreview.security import hash_password, issue_user_token  # noqa: E402

TEST_SECRET = "test-secret-not-for-production-use-0123456789"


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def book_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "genre": "Science Fiction",
        "description": "An envoy visits a planet whose people have no fixed sex.",
    }
    payload.update(overrides)
    return payload


# ══════════════════════════════════════════════════════════════════════════
# Unit-test fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mocked AsyncSession.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = book
        await book_service.delete_book(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Application fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        environment="test",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(test_settings):
    """A fresh application with an empty schema; ASGITransport skips lifespan."""
    application = create_app(test_settings)
    database = application.state.database
    await database.create_all()
    yield application
    await database.dispose()


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX client routed straight into the app.

    raise_app_exceptions=False: the catch-all 500 handler re-raises after
    responding, and tests assert on that response.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def register_user(test_client):
    async def _register(
        name: str = "Reader One",
        email: str = "reader@example.com",
        password: str = "secret123",
    ) -> Dict[str, Any]:
        response = await test_client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest_asyncio.fixture
async def user_token(register_user) -> str:
    body = await register_user()
    return body["data"]["token"]


@pytest_asyncio.fixture
async def admin_token(app, test_settings) -> str:
    """Admins cannot self-register; insert one directly and sign its token."""
    async with app.state.database.session() as session:
        admin = User(
            name="Site Admin",
            email="admin@example.com",
            password=hash_password("adminpass", rounds=4),
            role=Roles.ADMIN,
        )
        session.add(admin)
        await session.flush()
        admin_id = admin.id

    return issue_user_token(
        admin_id,
        test_settings.jwt_secret,
        timedelta(minutes=5),
        test_settings.jwt_algorithm,
    )


@pytest_asyncio.fixture
async def create_book(test_client, admin_token):
    async def _create(**overrides: Any) -> Dict[str, Any]:
        response = await test_client.post(
            "/books",
            json=book_payload(**overrides),
            headers=auth_header(admin_token),
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]["book"]

    return _create
