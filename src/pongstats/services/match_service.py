# src/pongstats/services/match_service.py

"""Business logic for match-related operations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pongstats.db import models
from pongstats.exceptions import (
    InvalidMatchStateError,
    InvalidScoreError,
    MatchNotFoundError,
    PlayerNotFoundError,
    SamePlayerError,
    TiedScoreError,
)
from pongstats.schemas import match as match_schema
from pongstats.schemas.match import MAX_SCORE, MatchStatus
from pongstats.services import stats_service
from pongstats.stats.cache import StatsCache

logger = logging.getLogger(__name__)

# Statuses a score can still be recorded from
SCOREABLE_STATUSES = (MatchStatus.SCHEDULED.value, MatchStatus.IN_PROGRESS.value)


async def get_match(db: AsyncSession, match_id: str) -> models.Match:
    """Load a match with both players eagerly attached."""
    query = (
        select(models.Match)
        .where(models.Match.id == match_id)
        .options(
            selectinload(models.Match.player1), selectinload(models.Match.player2)
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    match = result.scalar_one_or_none()
    if match is None:
        raise MatchNotFoundError(match_id)
    return match


async def _validate_players(db: AsyncSession, player1_id: str, player2_id: str) -> None:
    """
    Check that a match is between two different, existing players.

    Raises:
        SamePlayerError: If both ids are the same
        PlayerNotFoundError: If either player does not exist
    """
    if player1_id == player2_id:
        raise SamePlayerError(player1_id)

    query = select(models.Player.id).where(
        models.Player.id.in_([player1_id, player2_id])
    )
    result = await db.execute(query)
    existing_ids = set(result.scalars().all())

    for player_id in (player1_id, player2_id):
        if player_id not in existing_ids:
            raise PlayerNotFoundError(player_id)


def _validate_score(player1_score: int, player2_score: int) -> None:
    for score in (player1_score, player2_score):
        if score < 0:
            raise InvalidScoreError(score, "scores cannot be negative")
        if score > MAX_SCORE:
            raise InvalidScoreError(score, f"scores cannot exceed {MAX_SCORE}")
    if player1_score == player2_score:
        raise TiedScoreError(player1_score)


async def schedule_match(
    db: AsyncSession, match_in: match_schema.MatchCreate
) -> models.Match:
    """
    Schedule a new match between two players.

    Raises:
        SamePlayerError: If both players are the same
        PlayerNotFoundError: If a player_id doesn't exist
    """
    logger.info(
        "Scheduling new match",
        extra={"player1_id": match_in.player1_id, "player2_id": match_in.player2_id},
    )

    try:
        await _validate_players(db, match_in.player1_id, match_in.player2_id)

        new_match = models.Match(
            **match_in.model_dump(), status=MatchStatus.SCHEDULED.value
        )
        db.add(new_match)
        await db.commit()

    except Exception as e:
        logger.error(
            "Failed to schedule match",
            extra={"player1_id": match_in.player1_id, "error": str(e)},
            exc_info=True,
        )
        await db.rollback()
        raise

    logger.info("Match scheduled", extra={"match_id": new_match.id})
    return await get_match(db, new_match.id)


async def start_match(db: AsyncSession, match_id: str) -> models.Match:
    """Move a scheduled match to in-progress."""
    match = await get_match(db, match_id)
    if match.status != MatchStatus.SCHEDULED.value:
        raise InvalidMatchStateError(match_id, match.status, "start")

    match.status = MatchStatus.IN_PROGRESS.value
    await db.commit()
    logger.info("Match started", extra={"match_id": match_id})
    return await get_match(db, match_id)


async def record_score(
    db: AsyncSession,
    match_id: str,
    score_in: match_schema.MatchScoreUpdate,
    cache: StatsCache | None = None,
) -> models.Match:
    """
    Record the final score of a match and complete it.

    This service is responsible for:
    1. Validating the score (in range, no ties)
    2. Setting winner, loser, status and completion date on the match
    3. Recomputing both players' stats in the same transaction
    4. Invalidating both players in the caller's stats cache

    Raises:
        MatchNotFoundError: If the match doesn't exist
        InvalidMatchStateError: If the match is already completed or cancelled
        InvalidScoreError: If a score is out of range
        TiedScoreError: If both scores are equal
    """
    logger.info("Recording match score", extra={"match_id": match_id})

    try:
        match = await get_match(db, match_id)
        if match.status not in SCOREABLE_STATUSES:
            raise InvalidMatchStateError(match_id, match.status, "record a score for")

        _validate_score(score_in.player1_score, score_in.player2_score)

        player1_won = score_in.player1_score > score_in.player2_score
        match.player1_score = score_in.player1_score
        match.player2_score = score_in.player2_score
        match.winner_id = match.player1_id if player1_won else match.player2_id
        match.loser_id = match.player2_id if player1_won else match.player1_id
        match.status = MatchStatus.COMPLETED.value
        match.completed_date = score_in.completed_date or datetime.now(timezone.utc)
        await db.flush()

        # Stats are synced before the commit so match and stats land together
        for player_id in match.participant_ids:
            await stats_service.sync_player_stats(db, player_id, commit=False)

        await db.commit()

    except Exception as e:
        logger.error(
            "Failed to record match score",
            extra={"match_id": match_id, "error": str(e)},
            exc_info=True,
        )
        await db.rollback()
        raise

    if cache is not None:
        cache.invalidate(*match.participant_ids)

    logger.info(
        "Match completed",
        extra={"match_id": match_id, "winner_id": match.winner_id},
    )
    return await get_match(db, match_id)


async def cancel_match(db: AsyncSession, match_id: str) -> models.Match:
    """Cancel a match that has not been completed."""
    match = await get_match(db, match_id)
    if match.status not in SCOREABLE_STATUSES:
        raise InvalidMatchStateError(match_id, match.status, "cancel")

    match.status = MatchStatus.CANCELLED.value
    await db.commit()
    logger.info("Match cancelled", extra={"match_id": match_id})
    return await get_match(db, match_id)


async def delete_match(
    db: AsyncSession, match_id: str, cache: StatsCache | None = None
) -> None:
    """
    Delete a match. Deleting a completed match re-syncs both players' stats.
    """
    match = await get_match(db, match_id)
    was_completed = match.status == MatchStatus.COMPLETED.value
    participant_ids = match.participant_ids

    try:
        await db.delete(match)
        await db.flush()
        if was_completed:
            for player_id in participant_ids:
                await stats_service.sync_player_stats(db, player_id, commit=False)
        await db.commit()

    except Exception as e:
        logger.error(
            "Failed to delete match",
            extra={"match_id": match_id, "error": str(e)},
            exc_info=True,
        )
        await db.rollback()
        raise

    if cache is not None and was_completed:
        cache.invalidate(*participant_ids)
    logger.info("Match deleted", extra={"match_id": match_id})
