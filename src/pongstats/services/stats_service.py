# src/pongstats/services/stats_service.py

"""Business logic for computing, storing and serving player statistics."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pongstats.db import models
from pongstats.exceptions import (
    MatchNotFoundError,
    PongStatsError,
    StatsAggregationError,
)
from pongstats.repositories.match_repository import (
    MatchRepository,
    SqlMatchRepository,
)
from pongstats.schemas.match import MatchStatus
from pongstats.schemas.pagination import PaginatedResponse
from pongstats.schemas.stats import (
    BulkSyncResponse,
    LeaderboardEntry,
    LeaderboardSortField,
    MatchSyncResponse,
    PlayerDisplay,
    PlayerStats,
    PlayerStatsRead,
    PlayerSyncResult,
    ProfileStats,
    StatsDiscrepancy,
    StatsValidationReport,
)
from pongstats.stats import aggregator, profile
from pongstats.stats.cache import StatsCache

logger = logging.getLogger(__name__)

# Fields compared when checking a stored stats row against a recomputation
VALIDATED_FIELDS = ("total_wins", "total_matches", "current_streak")

LEADERBOARD_PREVIEW_SIZE = 3


def generate_initials(display_name: str | None) -> str:
    """Two-letter initials for avatars: "Ada Lovelace" -> "AL", "Ada" -> "AD"."""
    if not display_name or not isinstance(display_name, str):
        return "??"
    words = display_name.split()
    if not words:
        return "??"
    if len(words) == 1:
        return words[0][:2].upper()
    return (words[0][0] + words[1][0]).upper()


def _with_anomalies(result: aggregator.AggregationResult) -> PlayerStatsRead:
    return PlayerStatsRead(
        **result.stats.model_dump(), skipped_match_ids=result.skipped_match_ids
    )


def _log_skipped(player_id: str, skipped_match_ids: list[str]) -> None:
    if skipped_match_ids:
        logger.warning(
            "Skipped %d match(es) with no determinable winner",
            len(skipped_match_ids),
            extra={"player_id": player_id, "match_ids": skipped_match_ids},
        )


async def _store_stats(
    db: AsyncSession, stats: PlayerStats, match_count: int
) -> models.PlayerStatsRecord:
    """Upsert the cached stats row for a player. Flushes, does not commit."""
    record = await models.PlayerStatsRecord.find_by_player(db, stats.player_id)
    if record is None:
        record = models.PlayerStatsRecord(player_id=stats.player_id)
        db.add(record)

    record.stats = stats.model_dump(mode="json")
    record.total_wins = stats.total_wins
    record.ranking_score = stats.ranking_score
    record.last_synced_at = datetime.now(timezone.utc)
    record.last_synced_match_count = match_count
    await db.flush()
    return record


async def sync_player_stats(
    db: AsyncSession,
    player_id: str,
    cache: StatsCache | None = None,
    repository: MatchRepository | None = None,
    commit: bool = True,
) -> aggregator.AggregationResult:
    """
    Recompute a player's stats from their completed matches and store them.

    The stored row is overwritten in full; nothing is updated incrementally.
    With `commit=False` the caller owns the transaction (used when a score
    is recorded, so the match and both players' stats commit together).

    Raises:
        StatsAggregationError: If the stats could not be computed or stored
    """
    repository = repository or SqlMatchRepository(db)
    logger.info("Starting stats sync", extra={"player_id": player_id})

    try:
        matches = await repository.fetch_completed_matches(player_id)
        result = aggregator.compute_stats(player_id, matches)
        _log_skipped(player_id, result.skipped_match_ids)

        await _store_stats(db, result.stats, len(matches))
        if commit:
            await db.commit()

    except Exception as e:
        logger.error(
            "Failed to sync player stats",
            extra={"player_id": player_id, "error": str(e)},
            exc_info=True,
        )
        await db.rollback()
        if isinstance(e, PongStatsError):
            raise
        raise StatsAggregationError(player_id, str(e)) from e

    if cache is not None:
        cache.set(player_id, _with_anomalies(result))

    logger.info(
        "Stats synced",
        extra={
            "player_id": player_id,
            "total_matches": result.stats.total_matches,
            "total_wins": result.stats.total_wins,
            "current_streak": result.stats.current_streak,
        },
    )
    return result


async def sync_match_players(
    db: AsyncSession, match_id: str, cache: StatsCache | None = None
) -> MatchSyncResponse:
    """Recompute stats for both participants of a completed match."""
    match = await db.get(models.Match, match_id)
    if match is None:
        raise MatchNotFoundError(match_id)

    if match.status != MatchStatus.COMPLETED.value:
        logger.info(
            "Match is not completed, skipping stats sync",
            extra={"match_id": match_id, "status": match.status},
        )
        return MatchSyncResponse(
            match_id=match_id, skipped=True, reason="Match not completed"
        )

    results = []
    for player_id in match.participant_ids:
        result = await sync_player_stats(db, player_id, cache=cache)
        results.append(
            PlayerSyncResult(
                player_id=player_id,
                success=True,
                stats=result.stats,
                skipped_match_ids=result.skipped_match_ids,
            )
        )
    return MatchSyncResponse(match_id=match_id, results=results)


async def sync_all_player_stats(
    db: AsyncSession,
    cache: StatsCache | None = None,
    repository: MatchRepository | None = None,
) -> BulkSyncResponse:
    """
    Reconcile the stored stats of every player with a completed match.

    One player's failure is reported in the response and does not stop the
    others from being stored.
    """
    repository = repository or SqlMatchRepository(db)
    logger.info("Starting bulk stats sync for all players")

    matches = await repository.fetch_completed_matches()
    player_ids = await repository.completed_player_ids()
    logger.info("Found %d unique players to sync", len(player_ids))

    batch = aggregator.compute_all_players_stats(matches, player_ids)
    failures = dict(batch.failures)

    match_counts: Counter[str] = Counter()
    for match in matches:
        match_counts.update(
            {pid for pid in (match.player1_id, match.player2_id) if pid}
        )

    try:
        for player_id, result in batch.results.items():
            _log_skipped(player_id, result.skipped_match_ids)
            # Each player's row gets its own savepoint
            try:
                async with db.begin_nested():
                    await _store_stats(db, result.stats, match_counts[player_id])
            except Exception as e:
                logger.error(
                    "Failed to store stats for player",
                    extra={"player_id": player_id, "error": str(e)},
                    exc_info=True,
                )
                failures[player_id] = str(e)

        await db.commit()

    except Exception as e:
        logger.error("Bulk stats sync failed", extra={"error": str(e)}, exc_info=True)
        await db.rollback()
        raise

    results = []
    for player_id in player_ids:
        if player_id in failures:
            logger.error(
                "Failed to sync stats for player",
                extra={"player_id": player_id, "error": failures[player_id]},
            )
            results.append(
                PlayerSyncResult(
                    player_id=player_id,
                    success=False,
                    error=failures[player_id],
                )
            )
            continue

        result = batch.results[player_id]
        if cache is not None:
            cache.set(player_id, _with_anomalies(result))
        results.append(
            PlayerSyncResult(
                player_id=player_id,
                success=True,
                stats=result.stats,
                skipped_match_ids=result.skipped_match_ids,
            )
        )

    synced = len(results) - len(failures)
    logger.info(
        "Bulk sync completed. %d/%d players synced successfully",
        synced,
        len(player_ids),
    )
    return BulkSyncResponse(synced=synced, failed=len(failures), results=results)


async def get_player_stats(
    db: AsyncSession,
    player_id: str,
    cache: StatsCache | None = None,
    repository: MatchRepository | None = None,
) -> PlayerStatsRead:
    """
    Current stats for a player, computed from matches.

    Served from `cache` when present; otherwise computed (not stored) and
    placed in the cache.
    """
    if cache is not None:
        cached = cache.get(player_id)
        if cached is not None:
            logger.debug("Stats cache hit", extra={"player_id": player_id})
            if isinstance(cached, PlayerStatsRead):
                return cached
            return PlayerStatsRead(**cached.model_dump())

    repository = repository or SqlMatchRepository(db)
    matches = await repository.fetch_completed_matches(player_id)
    result = aggregator.compute_stats(player_id, matches)
    _log_skipped(player_id, result.skipped_match_ids)

    stats = _with_anomalies(result)
    if cache is not None:
        cache.set(player_id, stats)
    return stats


async def get_profile_stats(
    db: AsyncSession,
    player_id: str,
    now: datetime | None = None,
    repository: MatchRepository | None = None,
) -> ProfileStats:
    """Stats plus opponent, time, score and achievement analytics."""
    repository = repository or SqlMatchRepository(db)
    matches = await repository.fetch_completed_matches(player_id)
    profile_stats = profile.build_profile_stats(player_id, matches, now=now)
    _log_skipped(player_id, profile_stats.skipped_match_ids)
    return profile_stats


async def validate_player_stats(
    db: AsyncSession,
    player_id: str,
    repository: MatchRepository | None = None,
) -> StatsValidationReport:
    """Compare a player's stored stats row with a fresh computation."""
    repository = repository or SqlMatchRepository(db)

    record = await models.PlayerStatsRecord.find_by_player(db, player_id)
    stored = PlayerStats.model_validate(record.stats) if record else None

    matches = await repository.fetch_completed_matches(player_id)
    calculated = aggregator.compute_stats(player_id, matches).stats

    discrepancies = {}
    for field in VALIDATED_FIELDS:
        calculated_value = getattr(calculated, field)
        stored_value = getattr(stored, field) if stored is not None else None
        if stored_value != calculated_value:
            discrepancies[field] = StatsDiscrepancy(
                stored=stored_value,
                calculated=calculated_value,
                difference=(
                    calculated_value - stored_value
                    if stored_value is not None
                    else None
                ),
            )

    if discrepancies:
        logger.warning(
            "Stored stats are out of date",
            extra={"player_id": player_id, "fields": sorted(discrepancies)},
        )

    return StatsValidationReport(
        player_id=player_id,
        has_discrepancies=bool(discrepancies),
        discrepancies=discrepancies,
        stored_stats=stored,
        calculated_stats=calculated,
        match_count=len(matches),
    )


def _player_display(player: models.Player | None, player_id: str) -> PlayerDisplay:
    if player is None:
        return PlayerDisplay(id=player_id)
    return PlayerDisplay(
        id=player_id,
        display_name=player.display_name or "Unknown Player",
        profile_image=player.photo_url,
        initials=generate_initials(player.display_name),
    )


async def get_leaderboard(
    db: AsyncSession,
    sort_by: LeaderboardSortField = LeaderboardSortField.TOTAL_WINS,
    skip: int = 0,
    limit: int = 50,
) -> PaginatedResponse[LeaderboardEntry]:
    """Players ranked by their stored stats, highest first."""
    sort_column = getattr(models.PlayerStatsRecord, sort_by.value)

    count_query = select(func.count()).select_from(models.PlayerStatsRecord)
    total = (await db.execute(count_query)).scalar_one()

    query = (
        select(models.PlayerStatsRecord, models.Player)
        .outerjoin(
            models.Player, models.Player.id == models.PlayerStatsRecord.player_id
        )
        .order_by(sort_column.desc(), models.PlayerStatsRecord.player_id.asc())
        .offset(skip)
        .limit(limit)
    )
    rows = (await db.execute(query)).all()

    entries = [
        LeaderboardEntry(
            rank=skip + i + 1,
            player=_player_display(player, record.player_id),
            stats=PlayerStats.model_validate(record.stats),
        )
        for i, (record, player) in enumerate(rows)
    ]

    logger.info(
        "Leaderboard generated",
        extra={"sort_by": sort_by.value, "count": len(entries), "total": total},
    )
    return PaginatedResponse(
        items=entries,
        total=total,
        skip=skip,
        limit=limit,
        has_more=(skip + len(entries)) < total,
    )


async def get_leaderboard_preview(db: AsyncSession) -> list[LeaderboardEntry]:
    """Top three players by total wins."""
    page = await get_leaderboard(
        db, LeaderboardSortField.TOTAL_WINS, skip=0, limit=LEADERBOARD_PREVIEW_SIZE
    )
    return page.items
