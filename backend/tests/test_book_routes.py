"""
BookReview Backend: Book Endpoint Tests
=========================================

What we test:
    ✅ admin gating: 401 without token, 401 expired, 403 non-admin
    ✅ create / duplicate combo (409, single row) / escaping / failed commit (500, no row)
    ✅ listing: pagination maths, default order, filters, sort fallback
    ✅ detail enrichment (average rating, review count)
    ✅ partial update, no-fields 400, update collisions 409
    ✅ delete removes the book and its reviews
"""

import math
import sqlite3
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from bookreview.constants import Messages
from bookreview.models.book import Book
from bookreview.security import issue_user_token

from conftest import TEST_SECRET, auth_header, book_payload


async def add_review(test_client, token, book_id, rating, comment="Thoroughly enjoyable."):
    response = await test_client.post(
        f"/books/{book_id}/reviews",
        json={"rating": rating, "comment": comment},
        headers=auth_header(token),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["review"]


class TestAdminGating:

    @pytest.mark.asyncio
    async def test_no_token_is_401(self, test_client):
        response = await test_client.post("/books", json=book_payload())
        assert response.status_code == 401
        assert response.json()["message"] == Messages.ACCESS_TOKEN_REQUIRED

    @pytest.mark.asyncio
    async def test_regular_user_is_403(self, test_client, user_token):
        response = await test_client.post("/books", json=book_payload(), headers=auth_header(user_token))
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": Messages.ADMIN_ACCESS_REQUIRED}

    @pytest.mark.asyncio
    async def test_expired_admin_token_is_401(self, test_client, admin_token):
        expired = issue_user_token(1, TEST_SECRET, timedelta(seconds=-5))
        response = await test_client.post("/books", json=book_payload(), headers=auth_header(expired))
        assert response.status_code == 401
        assert response.json()["message"] == Messages.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_auth_runs_before_body_validation(self, test_client, user_token):
        response = await test_client.post("/books", json={}, headers=auth_header(user_token))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_and_delete_are_gated(self, test_client, user_token, create_book):
        book = await create_book()

        update = await test_client.put(
            f"/books/{book['id']}", json={"genre": "Drama"}, headers=auth_header(user_token)
        )
        delete = await test_client.delete(f"/books/{book['id']}")

        assert update.status_code == 403
        assert delete.status_code == 401


class TestCreateBook:

    @pytest.mark.asyncio
    async def test_create_returns_enriched_book(self, test_client, admin_token):
        response = await test_client.post("/books", json=book_payload(), headers=auth_header(admin_token))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == Messages.BOOK_CREATED
        book = body["data"]["book"]
        assert book["title"] == "The Left Hand of Darkness"
        assert book["average_rating"] == 0
        assert book["review_count"] == 0
        assert book["created_at"]

    @pytest.mark.asyncio
    async def test_duplicate_combo_conflicts(self, test_client, admin_token, app):
        payload = book_payload(title="T" * 2, author="A" * 2, genre="G" * 2)
        first = await test_client.post("/books", json=payload, headers=auth_header(admin_token))
        second = await test_client.post("/books", json=payload, headers=auth_header(admin_token))

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["message"] == Messages.BOOK_EXISTS

        async with app.state.database.session() as session:
            count = await session.scalar(
                select(func.count(Book.id)).where(Book.title == "TT", Book.author == "AA", Book.genre == "GG")
            )
        assert count == 1

    @pytest.mark.asyncio
    async def test_text_is_escaped(self, create_book):
        book = await create_book(title="Tom & Jerry's <Guide>")
        assert book["title"] == "Tom &amp; Jerry&#x27;s &lt;Guide&gt;"

    @pytest.mark.asyncio
    async def test_validation_failure(self, test_client, admin_token):
        response = await test_client.post(
            "/books",
            json=book_payload(description="too short"),
            headers=auth_header(admin_token),
        )
        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "description", "message": Messages.DESCRIPTION_LENGTH}
        ]

    @pytest.mark.asyncio
    async def test_failed_commit_is_a_server_error(self, test_client, admin_token, app):
        failing_commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, sqlite3.OperationalError("database is locked"))
        )
        with patch.object(AsyncSession, "commit", failing_commit):
            response = await test_client.post("/books", json=book_payload(), headers=auth_header(admin_token))

        assert failing_commit.await_count == 1
        assert response.status_code == 500
        assert response.json()["message"] == Messages.SERVER_ERROR

        async with app.state.database.session() as session:
            assert await session.scalar(select(func.count(Book.id))) == 0


class TestListBooks:

    @pytest.mark.asyncio
    async def test_second_page_of_ten(self, test_client, create_book):
        for i in range(25):
            await create_book(title=f"Book {i:02d}")

        response = await test_client.get("/books", params={"page": 2, "limit": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == Messages.BOOKS_RETRIEVED
        # Default order is newest first: page 2 holds the 11th-20th newest
        titles = [book["title"] for book in body["data"]["books"]]
        assert titles == [f"Book {i:02d}" for i in range(14, 4, -1)]
        assert body["data"]["pagination"] == {
            "currentPage": 2,
            "totalPages": math.ceil(25 / 10),
            "totalBooks": 25,
            "booksPerPage": 10,
        }

    @pytest.mark.asyncio
    async def test_defaults(self, test_client, create_book):
        await create_book()
        body = (await test_client.get("/books")).json()
        assert body["data"]["pagination"] == {
            "currentPage": 1,
            "totalPages": 1,
            "totalBooks": 1,
            "booksPerPage": 10,
        }

    @pytest.mark.asyncio
    async def test_empty_catalogue(self, test_client):
        body = (await test_client.get("/books")).json()
        assert body["data"]["books"] == []
        assert body["data"]["pagination"]["totalPages"] == 0

    @pytest.mark.asyncio
    async def test_unknown_sort_falls_back_to_default(self, test_client, create_book):
        for title in ("Alpha", "Bravo", "Charlie"):
            await create_book(title=title)

        default = await test_client.get("/books")
        fallback = await test_client.get("/books", params={"sortBy": "password; DROP TABLE", "sortOrder": "sideways"})

        assert fallback.status_code == 200
        assert [b["title"] for b in fallback.json()["data"]["books"]] == ["Charlie", "Bravo", "Alpha"]
        assert fallback.json()["data"]["books"] == default.json()["data"]["books"]

    @pytest.mark.asyncio
    async def test_sort_by_title_ascending(self, test_client, create_book):
        for title in ("Mango", "Apple", "Zucchini"):
            await create_book(title=title)

        response = await test_client.get("/books", params={"sortBy": "title", "sortOrder": "asc"})

        assert [b["title"] for b in response.json()["data"]["books"]] == ["Apple", "Mango", "Zucchini"]

    @pytest.mark.asyncio
    async def test_sort_by_average_rating(self, test_client, create_book, user_token):
        low = await create_book(title="Low Rated")
        high = await create_book(title="High Rated")
        await create_book(title="Unrated")
        await add_review(test_client, user_token, low["id"], 2)
        await add_review(test_client, user_token, high["id"], 5)

        response = await test_client.get("/books", params={"sortBy": "average_rating", "sortOrder": "DESC"})

        books = response.json()["data"]["books"]
        assert [b["title"] for b in books] == ["High Rated", "Low Rated", "Unrated"]
        assert books[0]["average_rating"] == 5
        assert books[0]["review_count"] == 1

    @pytest.mark.asyncio
    async def test_filters_are_case_insensitive_substrings(self, test_client, create_book):
        await create_book(title="Dune", author="Frank Herbert", genre="Science Fiction")
        await create_book(title="Emma", author="Jane Austen", genre="Romance")

        by_genre = await test_client.get("/books", params={"genre": "science"})
        by_author = await test_client.get("/books", params={"author": "AUSTEN"})
        by_title = await test_client.get("/books", params={"title": "un"})

        assert [b["title"] for b in by_genre.json()["data"]["books"]] == ["Dune"]
        assert [b["title"] for b in by_author.json()["data"]["books"]] == ["Emma"]
        assert [b["title"] for b in by_title.json()["data"]["books"]] == ["Dune"]
        assert by_genre.json()["data"]["pagination"]["totalBooks"] == 1

    @pytest.mark.asyncio
    async def test_like_wildcards_match_literally(self, test_client, create_book):
        await create_book(title="Dune")
        response = await test_client.get("/books", params={"title": "%"})
        assert response.json()["data"]["books"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params, field, message",
        [
            ({"page": 0}, "page", Messages.PAGE_INVALID),
            ({"page": "abc"}, "page", Messages.PAGE_INVALID),
            ({"page": 10**19}, "page", Messages.PAGE_INVALID),
            ({"limit": 101}, "limit", Messages.LIMIT_INVALID),
            ({"limit": 0}, "limit", Messages.LIMIT_INVALID),
        ],
    )
    async def test_invalid_pagination(self, test_client, params, field, message):
        response = await test_client.get("/books", params=params)
        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": field, "message": message}]


class TestGetBook:

    @pytest.mark.asyncio
    async def test_enrichment(self, test_client, create_book, register_user):
        book = await create_book()
        first = (await register_user(email="one@example.com"))["data"]["token"]
        second = (await register_user(email="two@example.com"))["data"]["token"]
        third = (await register_user(email="three@example.com"))["data"]["token"]
        await add_review(test_client, first, book["id"], 5)
        await add_review(test_client, second, book["id"], 4)
        await add_review(test_client, third, book["id"], 4)

        response = await test_client.get(f"/books/{book['id']}")

        assert response.status_code == 200
        data = response.json()["data"]["book"]
        assert response.json()["message"] == Messages.BOOK_RETRIEVED
        assert data["review_count"] == 3
        assert data["average_rating"] == 4.33

    @pytest.mark.asyncio
    async def test_missing_book(self, test_client):
        response = await test_client.get("/books/4242")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": Messages.BOOK_NOT_FOUND}

    @pytest.mark.asyncio
    async def test_non_integer_id(self, test_client):
        response = await test_client.get("/books/abc")
        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "book_id", "message": Messages.ID_INVALID}]


class TestUpdateBook:

    @pytest.mark.asyncio
    async def test_partial_update(self, test_client, admin_token, create_book):
        book = await create_book()

        response = await test_client.put(
            f"/books/{book['id']}",
            json={"genre": "  Classic Science Fiction "},
            headers=auth_header(admin_token),
        )

        assert response.status_code == 200
        assert response.json()["message"] == Messages.BOOK_UPDATED
        updated = response.json()["data"]["book"]
        assert updated["genre"] == "Classic Science Fiction"
        assert updated["title"] == book["title"]
        assert updated["description"] == book["description"]

    @pytest.mark.asyncio
    async def test_no_fields_is_400_and_row_unchanged(self, test_client, admin_token, create_book):
        book = await create_book()

        response = await test_client.put(
            f"/books/{book['id']}",
            json={"isbn": "978-0441478125"},
            headers=auth_header(admin_token),
        )

        assert response.status_code == 400
        assert response.json()["message"] == Messages.NO_FIELDS_TO_UPDATE
        current = (await test_client.get(f"/books/{book['id']}")).json()["data"]["book"]
        assert current == book

    @pytest.mark.asyncio
    async def test_missing_book(self, test_client, admin_token):
        response = await test_client.put("/books/999", json={"genre": "Drama"}, headers=auth_header(admin_token))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_full_combo_collision(self, test_client, admin_token, create_book):
        await create_book(title="Original")
        other = await create_book(title="Other")

        response = await test_client.put(
            f"/books/{other['id']}",
            json=book_payload(title="Original"),
            headers=auth_header(admin_token),
        )

        assert response.status_code == 409
        assert response.json()["message"] == Messages.BOOK_EXISTS

    @pytest.mark.asyncio
    async def test_partial_collision_caught_by_constraint(self, test_client, admin_token, create_book):
        await create_book(title="Original")
        other = await create_book(title="Other")

        response = await test_client.put(
            f"/books/{other['id']}",
            json={"title": "Original"},
            headers=auth_header(admin_token),
        )

        assert response.status_code == 409
        assert response.json()["message"] == Messages.BOOK_EXISTS
        unchanged = (await test_client.get(f"/books/{other['id']}")).json()["data"]["book"]
        assert unchanged["title"] == "Other"

    @pytest.mark.asyncio
    async def test_resubmitting_same_combo_is_allowed(self, test_client, admin_token, create_book):
        book = await create_book()
        response = await test_client.put(
            f"/books/{book['id']}",
            json=book_payload(),
            headers=auth_header(admin_token),
        )
        assert response.status_code == 200


class TestDeleteBook:

    @pytest.mark.asyncio
    async def test_delete_removes_reviews(self, test_client, admin_token, create_book, user_token):
        book = await create_book()
        await add_review(test_client, user_token, book["id"], 3)

        response = await test_client.delete(f"/books/{book['id']}", headers=auth_header(admin_token))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": Messages.BOOK_DELETED, "data": None}
        reviews = await test_client.get(f"/books/{book['id']}/reviews")
        assert reviews.status_code == 404
        assert (await test_client.get(f"/books/{book['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing_book(self, test_client, admin_token):
        response = await test_client.delete("/books/31337", headers=auth_header(admin_token))
        assert response.status_code == 404
        assert response.json()["message"] == Messages.BOOK_NOT_FOUND
