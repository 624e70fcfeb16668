"""Shared test fixtures for TaskFlow API tests.

Tests run in-process against the FastAPI app through httpx's ASGITransport,
with an in-memory TinyDB and the in-memory broadcaster.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from taskflow.config import Settings
from taskflow.main import create_app


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and any .env file"""
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        database_in_memory=True,
        broadcast_backend="memory",
        slack_webhook_url=None,
        jira_site_url=None,
        jira_access_token=None,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def db(app):
    """The app's database, opened"""
    app.state.db.initialize()
    yield app.state.db
    app.state.db.close()


@pytest.fixture
def broadcaster(app):
    return app.state.broadcaster


@pytest_asyncio.fixture
async def test_client(app, db) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client calling the app in-process"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# =============================================================================
# Identity Fixtures
# =============================================================================

@pytest.fixture
def owner_headers():
    return {
        "X-User-Id": "user-owner",
        "X-User-Name": "Olivia Owner",
        "X-User-Email": "olivia@example.com",
    }


@pytest.fixture
def member_headers():
    return {
        "X-User-Id": "user-member",
        "X-User-Name": "Max Member",
    }


@pytest.fixture
def outsider_headers():
    return {"X-User-Id": "user-outsider"}


# =============================================================================
# Board Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def test_board(test_client, owner_headers, member_headers):
    """A board with the default lists, shared with the member user.

    Returns the full board graph as served by GET /boards/{id}.
    """
    response = await test_client.post(
        "/boards",
        json={"title": "Test Board", "description": "Board for tests"},
        headers=owner_headers
    )
    assert response.status_code == 200
    board_id = response.json()["id"]

    response = await test_client.post(
        f"/boards/{board_id}/members",
        json={"user_id": member_headers["X-User-Id"], "user_name": member_headers["X-User-Name"]},
        headers=owner_headers
    )
    assert response.status_code == 200

    response = await test_client.get(f"/boards/{board_id}", headers=owner_headers)
    return response.json()


@pytest.fixture
def create_card(test_client, owner_headers):
    """Factory creating a card through the API"""

    async def _create(list_id: str, title: str, **fields) -> dict:
        response = await test_client.post(
            "/cards",
            json={"list_id": list_id, "title": title, **fields},
            headers=owner_headers
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _create


@pytest_asyncio.fixture
async def populated_board(test_client, owner_headers, test_board, create_card):
    """Test board with cards a1..a3 in "To Do" and b1..b2 in "In Progress"."""
    todo, doing, _ = test_board["lists"]
    for title in ("a1", "a2", "a3"):
        await create_card(todo["id"], title)
    for title in ("b1", "b2"):
        await create_card(doing["id"], title)

    response = await test_client.get(f"/boards/{test_board['id']}", headers=owner_headers)
    return response.json()
