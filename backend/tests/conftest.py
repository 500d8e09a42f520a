"""
Crude — Test Configuration (conftest.py)
==========================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (in-memory database, entities,
       controllers, an HTTP client bound to a fresh app).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    db_engine ─ session_factory ─ article_entity ─ article_controller ─ test_client
                                   └── seeded_articles
    flash:              a private FlashStore per test
    controller_options: override in a test class to reconfigure the controller
    mock_entity ─ mock_controller ─ mock_client (AsyncMock-backed storage)
    client_for:         factory building a client around any controller
"""

import os
from contextlib import asynccontextmanager

# Override settings for testing BEFORE any crude imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from crude.controllers.crud import CrudController  # noqa: E402
from crude.database import Base  # noqa: E402
from crude.models.article import Article  # noqa: E402
from crude.services.flash_service import FlashStore  # noqa: E402
from crude.services.sqlalchemy_entity import SqlAlchemyEntity  # noqa: E402

# Sent as a cookie on every client request so flash messages line up
FLASH_KEY = "0123456789abcdef0123456789abcdef"


# ══════════════════════════════════════════════════════════════════════════
# Persistence
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    A private in-memory SQLite database with the schema created.

    StaticPool keeps a single connection, so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def article_entity(session_factory):
    return SqlAlchemyEntity(Article, session_factory)


@pytest_asyncio.fixture
async def seeded_articles(article_entity):
    """Three stored articles: first, second, third (ids 1..3)."""
    created = []
    for slug, name in (("first", "First post"), ("second", "Second post"), ("third", "Third post")):
        created.append(
            await article_entity.create({"local_url": slug, "name": name, "body": f"Body of {slug}"})
        )
    return created


# ══════════════════════════════════════════════════════════════════════════
# Controller & HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def flash():
    return FlashStore()


@pytest.fixture
def flash_key():
    """The flash key every test client sends."""
    return FLASH_KEY


@pytest.fixture
def controller_options():
    """Options for article_controller; test classes override this fixture."""
    return {"edit_view": "crude/edit.html"}


@pytest.fixture
def article_controller(article_entity, controller_options, flash):
    return CrudController(article_entity, "/articles", controller_options, flash=flash)


@pytest.fixture
def client_for():
    """
    Factory: an HTTPX AsyncClient talking to a fresh app mounting `controller`.

    Usage:
        async with client_for(controller) as client:
            response = await client.get("/articles")
    """
    from crude.main import create_app

    @asynccontextmanager
    async def factory(controller):
        app = create_app(controllers=[controller])
        transport = ASGITransport(app=app)
        async with AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={"Cookie": f"crude_flash={FLASH_KEY}"},
        ) as client:
            yield client

    return factory


@pytest_asyncio.fixture
async def test_client(article_controller, client_for):
    """Client for the SQLite-backed article controller."""
    async with client_for(article_controller) as client:
        yield client


@pytest.fixture
def mock_controller(mock_entity, controller_options, flash):
    return CrudController(mock_entity, "/articles", controller_options, flash=flash)


@pytest_asyncio.fixture
async def mock_client(mock_controller, client_for):
    """Client for a controller over mock_entity."""
    async with client_for(mock_controller) as client:
        yield client


# ══════════════════════════════════════════════════════════════════════════
# Mocks
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_entity():
    """
    An Entity stand-in with AsyncMock storage operations.

    schema_paths() mirrors the Article model so the default templates render.
    """
    entity = MagicMock()
    entity.model = Article
    entity.create = AsyncMock()
    entity.read_one = AsyncMock()
    entity.read = AsyncMock(return_value=[])
    entity.read_limit = AsyncMock(return_value=[])
    entity.count = AsyncMock(return_value=0)
    entity.update = AsyncMock()
    entity.delete = AsyncMock()
    entity.schema_paths = MagicMock(return_value={
        "id": "Integer",
        "local_url": "String",
        "name": "String",
        "body": "Text",
        "_notes": "Text",
        "created_at": "DateTime",
    })
    return entity


@pytest.fixture
def sample_item():
    """A plain record with Article's fields."""
    return SimpleNamespace(
        id=7,
        local_url="hello-world",
        name="Hello world",
        body="Some text",
        _notes="internal",
        created_at=datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
    )
