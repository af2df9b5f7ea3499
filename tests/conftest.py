from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from src.api.deps import get_clock, get_db_session, get_notification_sink
from src.api.main import app
from src.core.clock import business_today
from src.core.config import Settings, get_settings
from src.domain import ActorContext
from src.domain.services.scope import CohortScopeValidator
from src.infrastructure.db.base import Base
from src.infrastructure.repositories import UnitOfWork

from tests.utils import FrozenClock, RecordingSink, World, seed_world


@pytest.fixture()
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    # File-backed so concurrent sessions see each other's commits
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cohort.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
def settings() -> Settings:
    return get_settings()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
async def world(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FrozenClock,
    settings: Settings,
) -> World:
    async with session_factory() as seed_session:
        return await seed_world(seed_session, business_today(clock, settings.business_timezone))


@pytest.fixture()
def context(world: World) -> ActorContext:
    return world.context


@pytest.fixture()
def uow(session: AsyncSession, sink: RecordingSink) -> UnitOfWork:
    return UnitOfWork(session, notifier=sink)


@pytest.fixture()
def scope(uow: UnitOfWork, clock: FrozenClock, settings: Settings) -> CohortScopeValidator:
    return CohortScopeValidator(uow, clock=clock, settings=settings)


@pytest.fixture()
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FrozenClock,
    sink: RecordingSink,
    world: World,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client bound to the seeded test database."""

    async def override_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_notification_sink] = lambda: sink
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
