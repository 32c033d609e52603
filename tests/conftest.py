"""Shared pytest fixtures for all test suites."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from tripboard.config import Settings
from tripboard.db.engine import create_session_factory, get_session
from tripboard.db.inmemory import InMemoryItineraryStore, InMemoryPlaceLookup
from tripboard.db.models import Base
from tripboard.db.models import Place as PlaceDB
from tripboard.db.sql_repositories import SqlItineraryStore, SqlPlaceLookup
from tripboard.main import app
from tripboard.services.itinerary import ItineraryService

PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(database_url="sqlite+aiosqlite://", _env_file=None)


@pytest.fixture
def memory_store() -> InMemoryItineraryStore:
    """Empty in-memory store."""
    return InMemoryItineraryStore()


@pytest.fixture
def memory_places() -> InMemoryPlaceLookup:
    """In-memory place lookup with nothing registered."""
    return InMemoryPlaceLookup()


@pytest.fixture
def memory_service(
    memory_store: InMemoryItineraryStore, memory_places: InMemoryPlaceLookup, settings: Settings
) -> ItineraryService:
    """Itinerary service over the in-memory store."""
    return ItineraryService(memory_store, memory_places, settings)


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the schema created.

    StaticPool keeps a single connection so every session sees the same
    database; foreign keys are enforced so cascades behave like Postgres.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sql_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Session bound to the SQLite test engine."""
    async with create_session_factory(sqlite_engine)() as session:
        yield session


@pytest.fixture
def sql_service(sql_session: AsyncSession, settings: Settings) -> ItineraryService:
    """Itinerary service over the SQL store."""
    return ItineraryService(SqlItineraryStore(sql_session), SqlPlaceLookup(sql_session), settings)


@pytest.fixture
def seed_place(sql_session: AsyncSession) -> Callable[..., Awaitable[uuid.UUID]]:
    """Insert collaborator place rows; returns an async factory."""

    async def _seed(project_id: uuid.UUID = PROJECT_ID, name: str = "Museum") -> uuid.UUID:
        place = PlaceDB(place_id=uuid.uuid4(), project_id=project_id, name=name, category="sight")
        sql_session.add(place)
        await sql_session.commit()
        return place.place_id

    return _seed


@pytest_asyncio.fixture
async def api_client(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app, with request sessions bound to the test engine."""
    session_factory = create_session_factory(sqlite_engine)

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
