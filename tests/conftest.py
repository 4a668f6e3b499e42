"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from tripsync.app.adapters.fixtures import FixturePlacesClient
from tripsync.app.db.inmemory import InMemoryItineraryStore
from tripsync.app.db.models import Base
from tripsync.app.db.repositories import TripRecord
from tripsync.app.places.resolver import CoordinateResolver
from tripsync.app.sync.locks import get_trip_locks
from tripsync.app.tools.executor import BreakerRegistry, CollaboratorExecutor, get_breaker_registry

TripFactory = Callable[..., Awaitable[TripRecord]]


@pytest.fixture(autouse=True)
def reset_registries() -> Generator[None, None, None]:
    """Breakers and trip locks are process-wide; start every test clean."""
    get_breaker_registry().clear()
    get_trip_locks().clear()
    yield
    get_breaker_registry().clear()
    get_trip_locks().clear()


@pytest.fixture
def store() -> InMemoryItineraryStore:
    return InMemoryItineraryStore()


@pytest.fixture
def trip_factory(store: InMemoryItineraryStore) -> TripFactory:
    """Create trips in the in-memory store."""

    async def make(days: int = 3, title: str = "Test trip") -> TripRecord:
        return await store.create_trip(title, date(2026, 3, 1), days)

    return make


@pytest.fixture
def places_client() -> FixturePlacesClient:
    return FixturePlacesClient()


@pytest.fixture
def coordinate_resolver(places_client: FixturePlacesClient) -> CoordinateResolver:
    return CoordinateResolver(places_client, executor=CollaboratorExecutor(registry=BreakerRegistry()))


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared across sessions of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSession(sqlite_engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_session(postgres_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSession(postgres_engine, expire_on_commit=False) as session:
        yield session
        await session.rollback()
