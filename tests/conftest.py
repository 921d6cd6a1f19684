# tests/conftest.py

"""Pytest configuration and fixtures.

Each test gets its own SQLite file so that several sessions can commit
and race against each other the way concurrent requests do.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from courtrank.api.deps import create_access_token
from courtrank.constants import Role, SkillLevel
from courtrank.db.models import Base, Player
from courtrank.db.session import get_db
from courtrank.main import app
from courtrank.schemas.progress import ProgressEventCreate
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Wednesday of ISO week 42, 2026
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fixture to create a fresh database file with the full schema."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", connect_args={"timeout": 30}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine, expire_on_commit=False, autocommit=False, autoflush=False
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Fixture to provide a database session to a test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Fixture to provide an async test client for the API."""

    # Override the get_db dependency: one session per request, as in production
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Clean up the override after the test
    del app.dependency_overrides[get_db]


@pytest.fixture
def make_player(db_session: AsyncSession):
    """Factory fixture that commits an account and returns it."""

    async def _make(
        name: str,
        role: Role = Role.PLAYER,
        skill_level: SkillLevel = SkillLevel.BEGINNER,
        team_id: str | None = None,
    ) -> Player:
        player = Player(
            name=name,
            role=role.value,
            skill_level=skill_level.value,
            team_id=team_id,
        )
        db_session.add(player)
        await db_session.commit()
        return player

    return _make


@pytest.fixture
def make_event():
    """Factory fixture for progress events with sensible defaults."""

    def _make(player_id: int, **overrides) -> ProgressEventCreate:
        data = {
            "event_id": f"evt-{uuid4().hex}",
            "player_id": player_id,
            "completed": True,
            "accuracy": None,
            "duration_min": 0,
            "calories_burned": 0,
            "occurred_at": NOW,
        }
        data.update(overrides)
        return ProgressEventCreate(**data)

    return _make


def auth_headers(player: Player) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(player.id)}"}


@pytest.fixture
def headers_for():
    """Bearer headers for an account."""
    return auth_headers


@pytest.fixture
async def admin(make_player) -> Player:
    return await make_player("Admin", role=Role.ADMIN)


@pytest.fixture
async def coach(make_player) -> Player:
    return await make_player("Coach", role=Role.COACH)


@pytest.fixture
def now() -> datetime:
    """Fixed reference time used as the engine's clock."""
    return NOW
