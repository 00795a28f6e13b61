"""Pytest configuration and fixtures."""
import os
import tempfile
from pathlib import Path

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# Settings are read at import time; point them at throwaway backends first
_TMP = Path(tempfile.mkdtemp(prefix="karaoke-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'app.db'}"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["APP_URL"] = "https://karaoke.test"
os.environ.pop("YOUTUBE_API_KEY", None)

import karaoke.models  # noqa: E402,F401
from karaoke.services.change_feed import ChangeFeed  # noqa: E402
from karaoke.services.context_store import ContextStore  # noqa: E402

API_BASE_URL = "http://test/api/v1"


@pytest.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database per test, created from the model metadata."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    # Postgres always enforces foreign keys; SQLite only when asked per connection
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def feed():
    """In-process change feed in place of Redis."""
    return ChangeFeed()


@pytest.fixture
def recorder(feed):
    """Collects every event published on the feed."""
    events = []
    original = feed.publish

    async def publish(event):
        events.append(event)
        await original(event)

    feed.publish = publish
    return events


class MemoryContextStore(ContextStore):
    def __init__(self):
        self.saved = {}

    async def save(self, device_id, context):
        self.saved[device_id] = context

    async def load(self, device_id):
        return self.saved.get(device_id)

    async def clear(self, device_id):
        self.saved.pop(device_id, None)


@pytest.fixture
def context_store():
    return MemoryContextStore()


@pytest.fixture
async def test_app(session_factory, feed, context_store):
    """App with the database, change feed and context store overridden."""
    from karaoke.main import app
    from karaoke.db.session import get_session
    from karaoke.services.change_feed import get_change_feed
    from karaoke.services.context_store import get_context_store

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_change_feed] = lambda: feed
    app.dependency_overrides[get_context_store] = lambda: context_store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as ac:
        yield ac


@pytest.fixture
def user_factory(db_session):
    """Factory for creating users directly in the database."""
    from karaoke.services.users import UserService

    service = UserService(db_session)
    counter = {"n": 0}

    async def _create_user(display_name: str | None = None, avatar_emoji: str | None = None):
        counter["n"] += 1
        return await service.create(display_name or f"Singer {counter['n']}", avatar_emoji)

    return _create_user


@pytest.fixture
def song_factory():
    from karaoke.schemas.queue import SongIn

    counter = {"n": 0}

    def _song(**overrides):
        counter["n"] += 1
        data = {
            "youtube_id": f"vid{counter['n']:08d}",
            "title": f"Song {counter['n']}",
            "artist": "Test Artist",
            "duration": 200,
        }
        data.update(overrides)
        return SongIn(**data)

    return _song
