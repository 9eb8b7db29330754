# tests/test_transaction_rollback.py

"""Tests for transaction atomicity and rollback behavior."""

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from pongstats.db.models import Match, PlayerStatsRecord
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

# =============================================================================
# Helper Functions
# =============================================================================


async def create_player(client: AsyncClient, player_id: str) -> None:
    res = await client.post(
        "/players/", json={"id": player_id, "display_name": player_id.title()}
    )
    assert res.status_code == 201


async def schedule(client: AsyncClient, player1_id: str, player2_id: str) -> str:
    res = await client.post(
        "/matches/", json={"player1_id": player1_id, "player2_id": player2_id}
    )
    assert res.status_code == 201
    return str(res.json()["id"])


async def count_matches(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(Match))).scalar_one()


async def count_stats_rows(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(PlayerStatsRecord))
    return result.scalar_one()


# =============================================================================
# Transaction Rollback Tests
# =============================================================================


@pytest.mark.asyncio
async def test_score_rolls_back_when_stats_sync_fails(
    async_client: AsyncClient, db_session: AsyncSession
):
    """A failed stats write leaves the match unscored and no stats stored."""
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")
    match_id = await schedule(async_client, "alice", "bob")

    with patch(
        "pongstats.services.stats_service._store_stats",
        side_effect=RuntimeError("disk full"),
    ):
        response = await async_client.post(
            f"/matches/{match_id}/score",
            json={"player1_score": 21, "player2_score": 11},
        )

    assert response.status_code == 500
    assert response.json()["detail"] == "Stats computation failed"
    assert response.json()["error_type"] == "StatsAggregationError"
    assert response.json()["details"] == {"player_id": "alice", "reason": "disk full"}

    match = (await async_client.get(f"/matches/{match_id}")).json()
    assert match["status"] == "scheduled"
    assert match["winner_id"] is None
    assert await count_stats_rows(db_session) == 0


@pytest.mark.asyncio
async def test_successful_score_writes_match_and_both_stats_rows(
    async_client: AsyncClient, db_session: AsyncSession
):
    await create_player(async_client, "alice")
    await create_player(async_client, "bob")
    match_id = await schedule(async_client, "alice", "bob")

    response = await async_client.post(
        f"/matches/{match_id}/score",
        json={"player1_score": 21, "player2_score": 11},
    )

    assert response.status_code == 200
    assert await count_stats_rows(db_session) == 2


@pytest.mark.asyncio
async def test_validation_error_before_database_changes(
    async_client: AsyncClient, db_session: AsyncSession
):
    """Rejected schedules never insert a match."""
    await create_player(async_client, "alice")
    initial = await count_matches(db_session)

    same = await async_client.post(
        "/matches/", json={"player1_id": "alice", "player2_id": "alice"}
    )
    missing = await async_client.post(
        "/matches/", json={"player1_id": "alice", "player2_id": "ghost"}
    )

    assert same.status_code == 422
    assert missing.status_code == 404
    assert await count_matches(db_session) == initial
