"""
snippetbin — Test Configuration (conftest.py)
===============================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, fresh for each test):
    ├── db_path:        Path of a SQLite file inside pytest's tmp_path
    ├── test_settings:  Settings pointing at db_path
    ├── store:          An opened SnippetStore on db_path
    └── test_client:    HTTPX AsyncClient talking to a started app on db_path
"""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings for testing BEFORE any app imports
os.environ["SNIPPETBIN_LOG_LEVEL"] = "WARNING"

from snippetbin.config import Settings  # noqa: E402
from snippetbin.services.snippet_store import SnippetStore  # noqa: E402


@pytest.fixture
def db_path(tmp_path):
    """A database file that does not exist yet, private to this test."""
    return str(tmp_path / "snippetbin.db")


@pytest.fixture
def test_settings(db_path):
    return Settings(database_path=db_path, log_level="WARNING")


@pytest_asyncio.fixture
async def store(db_path):
    """
    An opened store on a fresh database file.

    Usage:
        async def test_create(store):
            snippet = await store.create_snippet({"title": "a", "body": "x"})
    """
    snippet_store = await SnippetStore.open(db_path)
    try:
        yield snippet_store
    finally:
        await snippet_store.close()


@pytest_asyncio.fixture
async def test_client(test_settings):
    """
    An async HTTP client wired straight into a started application.

    ASGITransport does not send lifespan events, so the app's lifespan is
    entered here explicitly; that opens (and afterwards closes) the store.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/snippets")
            assert response.status_code == 200
    """
    from snippetbin.main import create_app

    app = create_app(test_settings)
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
