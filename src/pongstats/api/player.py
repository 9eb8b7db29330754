# src/pongstats/api/player.py

"""API endpoints for managing players and reading their statistics."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pongstats.api.deps import get_stats_cache
from pongstats.db.models import Player
from pongstats.db.session import get_db
from pongstats.schemas import player as player_schema
from pongstats.schemas.pagination import PaginatedResponse, PlayerSortField, SortOrder
from pongstats.schemas.stats import (
    PlayerStatsRead,
    PlayerSyncResult,
    ProfileStats,
    StatsValidationReport,
)
from pongstats.services import stats_service
from pongstats.stats.cache import StatsCache

# Create an APIRouter instance for players
# - prefix="/players": All routes here will be prefixed with /players
# - tags=["Players"]: Groups these endpoints under "Players" in the API docs
router = APIRouter(prefix="/players", tags=["Players"])


async def _get_player_or_404(db: AsyncSession, player_id: str) -> Player:
    player = await db.get(Player, player_id)
    if not player:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Player with id {player_id} not found",
        )
    return player


@router.post(
    "/",
    response_model=player_schema.PlayerRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_player(
    player_in: player_schema.PlayerCreate, db: AsyncSession = Depends(get_db)
) -> Player:
    """
    Register a player.

    - **id**: The uid issued by the auth provider.
    - **display_name**: Name shown on leaderboards.

    Raises:
        409 Conflict: If a player with the same id already exists.
    """
    conflict = HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"Player with id '{player_in.id}' already exists",
    )
    if await db.get(Player, player_in.id) is not None:
        raise conflict

    new_player = Player(**player_in.model_dump())
    try:
        db.add(new_player)
        await db.commit()
        await db.refresh(new_player)
    except IntegrityError:
        await db.rollback()
        raise conflict

    return new_player


@router.get("/", response_model=PaginatedResponse[player_schema.PlayerRead])
async def read_players(
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(50, ge=1, le=100, description="Max records to return"),
    sort_by: PlayerSortField = Query(PlayerSortField.ID, description="Sort field"),
    sort_order: SortOrder = Query(SortOrder.ASC, description="Sort direction"),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[player_schema.PlayerRead]:
    """
    Retrieve a paginated list of players.

    - **skip**: Number of records to skip (for pagination)
    - **limit**: Maximum number of records to return (1-100)
    - **sort_by**: Field to sort by (id, display_name, created_at)
    - **sort_order**: Sort direction (asc, desc)
    """
    base_query = select(Player)

    count_query = select(func.count()).select_from(base_query.subquery())
    total = (await db.execute(count_query)).scalar_one()

    sort_column = getattr(Player, sort_by.value)
    if sort_order == SortOrder.DESC:
        sort_column = sort_column.desc()

    query = base_query.order_by(sort_column).offset(skip).limit(limit)
    result = await db.execute(query)
    items = list(result.scalars().all())

    return PaginatedResponse(
        items=items,  # type: ignore[arg-type]
        total=total,
        skip=skip,
        limit=limit,
        has_more=(skip + len(items)) < total,
    )


@router.get("/{player_id}", response_model=player_schema.PlayerRead)
async def read_player(player_id: str, db: AsyncSession = Depends(get_db)) -> Player:
    """
    Retrieve a single player by their ID.
    """
    return await _get_player_or_404(db, player_id)


@router.put("/{player_id}", response_model=player_schema.PlayerRead)
async def update_player(
    player_id: str,
    player_in: player_schema.PlayerUpdate,
    db: AsyncSession = Depends(get_db),
) -> Player:
    """
    Update a player's display name or photo.

    Raises:
        404 Not Found: If the player doesn't exist.
    """
    player_to_update = await _get_player_or_404(db, player_id)

    update_data = player_in.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(player_to_update, key, value)

    db.add(player_to_update)
    await db.commit()
    await db.refresh(player_to_update)
    return player_to_update


@router.delete("/{player_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_player(
    player_id: str,
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
) -> None:
    """
    Delete a player and their cached stats.
    """
    player_to_delete = await _get_player_or_404(db, player_id)

    await db.delete(player_to_delete)
    await db.commit()
    cache.invalidate(player_id)

    return None


@router.get("/{player_id}/stats", response_model=PlayerStatsRead)
async def get_player_stats(
    player_id: str,
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
) -> PlayerStatsRead:
    """
    Get a player's statistics, computed from their completed matches.

    A player without completed matches gets zeroed stats.
    `skipped_match_ids` lists completed matches whose winner could not be
    determined.
    """
    await _get_player_or_404(db, player_id)
    return await stats_service.get_player_stats(db, player_id, cache=cache)


@router.get("/{player_id}/profile-stats", response_model=ProfileStats)
async def get_player_profile_stats(
    player_id: str, db: AsyncSession = Depends(get_db)
) -> ProfileStats:
    """
    Get profile analytics: opponents, time of day, weekday, score analysis,
    weekly trend, detailed recent form and achievements.
    """
    await _get_player_or_404(db, player_id)
    return await stats_service.get_profile_stats(db, player_id)


@router.post("/{player_id}/stats/sync", response_model=PlayerSyncResult)
async def sync_player_stats(
    player_id: str,
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
) -> PlayerSyncResult:
    """
    Recompute and store a player's statistics.
    """
    await _get_player_or_404(db, player_id)
    result = await stats_service.sync_player_stats(db, player_id, cache=cache)
    return PlayerSyncResult(
        player_id=player_id,
        success=True,
        stats=result.stats,
        skipped_match_ids=result.skipped_match_ids,
    )


@router.get("/{player_id}/stats/validate", response_model=StatsValidationReport)
async def validate_player_stats(
    player_id: str, db: AsyncSession = Depends(get_db)
) -> StatsValidationReport:
    """
    Compare a player's stored stats with a fresh computation.
    """
    await _get_player_or_404(db, player_id)
    return await stats_service.validate_player_stats(db, player_id)
