# tests/conftest.py

"""Pytest configuration and fixtures."""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from pongstats.db.models import Base, Match, Player
from pongstats.db.session import get_db
from pongstats.main import app
from pongstats.schemas.match import MatchStatus
from pongstats.stats.cache import InMemoryStatsCache
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture to provide a database session on a fresh in-memory database.

    Every test gets its own engine, so commits and rollbacks made by the
    services behave exactly as in production and nothing leaks between tests.
    """
    # StaticPool keeps the single in-memory connection alive for the test
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        bind=engine, expire_on_commit=False, autocommit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def stats_cache() -> InMemoryStatsCache:
    return InMemoryStatsCache()


@pytest.fixture
async def async_client(
    db_session: AsyncSession, stats_cache: InMemoryStatsCache
) -> AsyncGenerator[AsyncClient, None]:
    """Fixture to provide an async test client for the API."""

    # Override the get_db dependency to use the test database
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    # ASGITransport does not run the lifespan, so attach the cache directly
    app.state.stats_cache = stats_cache

    transport = ASGITransport(app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Clean up the override after the test
    del app.dependency_overrides[get_db]


@pytest.fixture
def create_player(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Player]]:
    """Factory fixture that inserts and commits a player."""

    async def _create(player_id: str, display_name: str | None = None) -> Player:
        player = Player(id=player_id, display_name=display_name or player_id.title())
        db_session.add(player)
        await db_session.commit()
        return player

    return _create


@pytest.fixture
def create_completed_match(
    db_session: AsyncSession,
) -> Callable[..., Awaitable[Match]]:
    """Factory fixture that inserts a completed match straight into the table.

    Bypasses the match service so tests can stage stats that are out of
    date with the stored rows.
    """

    async def _create(
        player1_id: str,
        player2_id: str,
        player1_score: int,
        player2_score: int,
        completed_date: datetime,
        location: str | None = None,
    ) -> Match:
        player1_won = player1_score > player2_score
        match = Match(
            player1_id=player1_id,
            player2_id=player2_id,
            player1_score=player1_score,
            player2_score=player2_score,
            winner_id=player1_id if player1_won else player2_id,
            loser_id=player2_id if player1_won else player1_id,
            status=MatchStatus.COMPLETED.value,
            completed_date=completed_date,
            location=location,
        )
        db_session.add(match)
        await db_session.commit()
        return match

    return _create
