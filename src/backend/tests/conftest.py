"""
Pytest fixtures for ElectVote backend tests.
"""

import os
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ELECTION_AUTO_STATUS", "false")

NOW = datetime(2026, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.add = MagicMock()
    return session


# =============================================================================
# In-memory database
# =============================================================================


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database with all tables."""
    import models  # noqa: F401
    from db.base import Base

    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_election(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Any]]:
    """Factory inserting an election; defaults to an active one open around NOW."""
    from models.election import ElectionStatus
    from repositories.election_repository import ElectionRepository

    async def _make(**overrides: Any) -> Any:
        values: dict[str, Any] = {
            "title": "City Council 2026",
            "start_time": NOW - timedelta(hours=1),
            "end_time": NOW + timedelta(hours=1),
            "status": ElectionStatus.ACTIVE,
        }
        values.update(overrides)
        election = await ElectionRepository(db_session).create(**values)
        await db_session.commit()
        return election

    return _make


@pytest.fixture
def make_candidate(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Any]]:
    """Factory inserting a candidate, optionally with a preset vote count."""
    from repositories.candidate_repository import CandidateRepository

    async def _make(election_id: str, name: str, vote_count: int = 0, **overrides: Any) -> Any:
        repo = CandidateRepository(db_session)
        candidate = await repo.create(election_id=election_id, name=name, **overrides)
        if vote_count:
            await repo.set_vote_count(str(candidate.id), vote_count)
        await db_session.commit()
        await db_session.refresh(candidate)
        return candidate

    return _make


# =============================================================================
# HTTP client
# =============================================================================


@pytest.fixture
async def app(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[Any, None]:
    """FastAPI application wired to the in-memory database."""
    from db.session import get_db
    from main import app as fastapi_app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def make_token(user_id: str, role: str = "voter") -> str:
    from core.security import create_access_token

    return create_access_token({"sub": user_id, "role": role})


@pytest.fixture
def voter_id() -> str:
    return f"voter-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def auth_headers(voter_id: str) -> dict[str, str]:
    """Bearer headers for a voter."""
    return {"Authorization": f"Bearer {make_token(voter_id)}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Bearer headers for an administrator."""
    return {"Authorization": f"Bearer {make_token('admin-1', role='admin')}"}
