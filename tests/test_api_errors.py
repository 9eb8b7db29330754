# tests/test_api_errors.py

"""Tests for HTTP error responses across all API endpoints."""

import pytest
from httpx import AsyncClient


async def create_players(client: AsyncClient, *player_ids: str) -> None:
    for player_id in player_ids:
        res = await client.post(
            "/players/", json={"id": player_id, "display_name": player_id.title()}
        )
        assert res.status_code == 201


# =============================================================================
# 404 Not Found Errors
# =============================================================================


@pytest.mark.asyncio
async def test_get_nonexistent_player_returns_404(async_client: AsyncClient):
    response = await async_client.get("/players/nobody")

    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


@pytest.mark.asyncio
async def test_update_nonexistent_player_returns_404(async_client: AsyncClient):
    response = await async_client.put("/players/nobody", json={"display_name": "Ann"})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_nonexistent_match_returns_404(async_client: AsyncClient):
    response = await async_client.get("/matches/missing")

    assert response.status_code == 404
    data = response.json()
    assert data["error_type"] == "MatchNotFoundError"
    assert data["details"] == {"match_id": "missing"}


@pytest.mark.asyncio
async def test_score_nonexistent_match_returns_404(async_client: AsyncClient):
    response = await async_client.post(
        "/matches/missing/score", json={"player1_score": 21, "player2_score": 3}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_schedule_with_unknown_player_returns_404(async_client: AsyncClient):
    await create_players(async_client, "alice")

    response = await async_client.post(
        "/matches/", json={"player1_id": "alice", "player2_id": "ghost"}
    )

    assert response.status_code == 404
    assert response.json()["error_type"] == "PlayerNotFoundError"


# =============================================================================
# 422 Validation Errors
# =============================================================================


@pytest.mark.asyncio
async def test_schedule_against_self_returns_422(async_client: AsyncClient):
    await create_players(async_client, "alice")

    response = await async_client.post(
        "/matches/", json={"player1_id": "alice", "player2_id": "alice"}
    )

    assert response.status_code == 422
    assert response.json()["error_type"] == "SamePlayerError"


@pytest.mark.asyncio
async def test_tied_score_returns_422(async_client: AsyncClient):
    await create_players(async_client, "alice", "bob")
    match = (
        await async_client.post(
            "/matches/", json={"player1_id": "alice", "player2_id": "bob"}
        )
    ).json()

    response = await async_client.post(
        f"/matches/{match['id']}/score",
        json={"player1_score": 20, "player2_score": 20},
    )

    assert response.status_code == 422
    assert response.json()["error_type"] == "TiedScoreError"

    # The match is untouched
    unchanged = (await async_client.get(f"/matches/{match['id']}")).json()
    assert unchanged["status"] == "scheduled"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "score",
    [
        {"player1_score": -1, "player2_score": 21},
        {"player1_score": 51, "player2_score": 21},
        {"player1_score": "many", "player2_score": 21},
        {"player1_score": 21},
    ],
)
async def test_malformed_score_payload_returns_422(async_client: AsyncClient, score):
    await create_players(async_client, "alice", "bob")
    match = (
        await async_client.post(
            "/matches/", json={"player1_id": "alice", "player2_id": "bob"}
        )
    ).json()

    response = await async_client.post(f"/matches/{match['id']}/score", json=score)

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_starting_a_started_match_returns_422(async_client: AsyncClient):
    await create_players(async_client, "alice", "bob")
    match = (
        await async_client.post(
            "/matches/", json={"player1_id": "alice", "player2_id": "bob"}
        )
    ).json()
    await async_client.post(f"/matches/{match['id']}/start")

    response = await async_client.post(f"/matches/{match['id']}/start")

    assert response.status_code == 422
    data = response.json()
    assert data["error_type"] == "InvalidMatchStateError"
    assert data["details"]["status"] == "in-progress"


@pytest.mark.asyncio
async def test_short_display_name_returns_422(async_client: AsyncClient):
    response = await async_client.post("/players/", json={"id": "x", "display_name": "A"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_leaderboard_sort_field_returns_422(async_client: AsyncClient):
    response = await async_client.get(
        "/stats/leaderboard", params={"sort_by": "elo"}
    )

    assert response.status_code == 422
