# src/pongstats/api/stats.py

"""API endpoints for leaderboards and stats maintenance."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pongstats.api.deps import get_stats_cache
from pongstats.db.session import get_db
from pongstats.schemas.pagination import PaginatedResponse
from pongstats.schemas.stats import (
    BulkSyncResponse,
    LeaderboardEntry,
    LeaderboardSortField,
    MatchSyncResponse,
)
from pongstats.services import stats_service
from pongstats.stats.cache import StatsCache

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("/leaderboard", response_model=PaginatedResponse[LeaderboardEntry])
async def read_leaderboard(
    sort_by: LeaderboardSortField = Query(
        LeaderboardSortField.TOTAL_WINS, description="Ranking field"
    ),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(50, ge=1, le=100, description="Max records to return"),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[LeaderboardEntry]:
    """
    Players ranked by their stored stats.

    - **sort_by**: `total_wins` or `ranking_score`, highest first
    - **skip** / **limit**: Pagination; ranks continue across pages
    """
    return await stats_service.get_leaderboard(
        db, sort_by=sort_by, skip=skip, limit=limit
    )


@router.get("/leaderboard/preview", response_model=list[LeaderboardEntry])
async def read_leaderboard_preview(
    db: AsyncSession = Depends(get_db),
) -> list[LeaderboardEntry]:
    """Top three players by total wins."""
    return await stats_service.get_leaderboard_preview(db)


@router.post("/sync-all", response_model=BulkSyncResponse)
async def sync_all_stats(
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
) -> BulkSyncResponse:
    """
    Recompute and store stats for every player with a completed match.

    Per-player failures are reported in the response body.
    """
    return await stats_service.sync_all_player_stats(db, cache=cache)


@router.post("/matches/{match_id}/sync", response_model=MatchSyncResponse)
async def sync_match_stats(
    match_id: str,
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
) -> MatchSyncResponse:
    """
    Recompute stats for both players of a match.

    A match that is not completed is reported as skipped.
    """
    return await stats_service.sync_match_players(db, match_id, cache=cache)
