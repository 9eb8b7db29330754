# src/pongstats/api/match.py

"""API endpoints for scheduling, playing and scoring matches."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pongstats.api.deps import get_stats_cache
from pongstats.db.models import Match
from pongstats.db.session import get_db
from pongstats.schemas import match as match_schema
from pongstats.schemas.match import MatchStatus
from pongstats.schemas.pagination import MatchSortField, PaginatedResponse, SortOrder
from pongstats.services import match_service
from pongstats.stats.cache import StatsCache

# Create an APIRouter instance for matches
router = APIRouter(prefix="/matches", tags=["Matches"])


@router.get("/", response_model=PaginatedResponse[match_schema.MatchRead])
async def read_matches(
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(50, ge=1, le=100, description="Max records to return"),
    sort_by: MatchSortField = Query(
        MatchSortField.CREATED_AT, description="Sort field"
    ),
    sort_order: SortOrder = Query(SortOrder.DESC, description="Sort direction"),
    player_id: str | None = Query(None, description="Filter by player"),
    match_status: MatchStatus | None = Query(
        None, alias="status", description="Filter by status"
    ),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[match_schema.MatchRead]:
    """
    Retrieve a paginated list of matches with filtering options.

    - **skip**: Number of records to skip (for pagination)
    - **limit**: Maximum number of records to return (1-100)
    - **sort_by**: Field to sort by (scheduled_date, completed_date, created_at)
    - **sort_order**: Sort direction (asc, desc)
    - **player_id**: Only matches this player took part in
    - **status**: Only matches in this status
    """
    base_query = select(Match)

    if player_id is not None:
        base_query = base_query.where(
            or_(Match.player1_id == player_id, Match.player2_id == player_id)
        )

    if match_status is not None:
        base_query = base_query.where(Match.status == match_status.value)

    count_query = select(func.count()).select_from(base_query.subquery())
    total = (await db.execute(count_query)).scalar_one()

    sort_column = getattr(Match, sort_by.value)
    if sort_order == SortOrder.DESC:
        sort_column = sort_column.desc()

    # Eager load both players so the response needs no lazy loads
    query = (
        base_query.order_by(sort_column, Match.id)
        .offset(skip)
        .limit(limit)
        .options(selectinload(Match.player1), selectinload(Match.player2))
    )
    result = await db.execute(query)
    items = list(result.scalars().all())

    return PaginatedResponse(
        items=items,  # type: ignore[arg-type]
        total=total,
        skip=skip,
        limit=limit,
        has_more=(skip + len(items)) < total,
    )


@router.post(
    "/", response_model=match_schema.MatchRead, status_code=status.HTTP_201_CREATED
)
async def create_match(
    match_in: match_schema.MatchCreate, db: AsyncSession = Depends(get_db)
) -> Match:
    """
    Schedule a match between two registered players.

    Raises:
        404: If either player doesn't exist
        422: If both player ids are the same
    """
    return await match_service.schedule_match(db, match_in)


@router.get("/{match_id}", response_model=match_schema.MatchRead)
async def read_match(match_id: str, db: AsyncSession = Depends(get_db)) -> Match:
    """
    Retrieve a single match by its ID, including both players.
    """
    return await match_service.get_match(db, match_id)


@router.post("/{match_id}/start", response_model=match_schema.MatchRead)
async def start_match(match_id: str, db: AsyncSession = Depends(get_db)) -> Match:
    """
    Mark a scheduled match as in progress.

    Raises:
        422: If the match is not scheduled
    """
    return await match_service.start_match(db, match_id)


@router.post("/{match_id}/score", response_model=match_schema.MatchRead)
async def record_match_score(
    match_id: str,
    score_in: match_schema.MatchScoreUpdate,
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
) -> Match:
    """
    Record the final score and complete the match.

    Both players' stored stats are recomputed in the same transaction.

    Raises:
        404: If the match doesn't exist
        422: If the score is tied or out of range, or the match is already
            completed or cancelled
    """
    return await match_service.record_score(db, match_id, score_in, cache=cache)


@router.post("/{match_id}/cancel", response_model=match_schema.MatchRead)
async def cancel_match(match_id: str, db: AsyncSession = Depends(get_db)) -> Match:
    """
    Cancel a match that has not been completed.
    """
    return await match_service.cancel_match(db, match_id)


@router.delete("/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_match(
    match_id: str,
    db: AsyncSession = Depends(get_db),
    cache: StatsCache = Depends(get_stats_cache),
) -> None:
    """
    Delete a match. Deleting a completed match recomputes both players' stats.
    """
    await match_service.delete_match(db, match_id, cache=cache)
    return None
