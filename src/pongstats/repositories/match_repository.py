# src/pongstats/repositories/match_repository.py

"""Read access to completed matches for the stats aggregator.

The aggregator only consumes `MatchRecord` lists; where the records come from
is hidden behind `MatchRepository`. The SQL implementation pushes the status
and participant filters into the query instead of filtering in memory.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from sqlalchemy import or_, select, union
from sqlalchemy.ext.asyncio import AsyncSession

from pongstats.db import models
from pongstats.schemas.match import MatchRecord, MatchStatus

logger = logging.getLogger(__name__)


class MatchRepository(Protocol):
    """Source of completed matches."""

    async def fetch_completed_matches(
        self, player_id: str | None = None
    ) -> list[MatchRecord]:
        """Completed matches, optionally only those involving `player_id`."""
        ...

    async def completed_player_ids(self) -> list[str]:
        """Every player with at least one completed match, sorted."""
        ...


def match_to_record(match: models.Match) -> MatchRecord:
    """Convert an ORM match into the aggregator's input shape."""
    return MatchRecord(
        id=match.id,
        player1_id=match.player1_id,
        player2_id=match.player2_id,
        player1_score=match.player1_score,
        player2_score=match.player2_score,
        winner_id=match.winner_id,
        loser_id=match.loser_id,
        status=match.status,
        completed_date=match.completed_date,
        location=match.location,
    )


class SqlMatchRepository:
    """MatchRepository backed by the application database."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def fetch_completed_matches(
        self, player_id: str | None = None
    ) -> list[MatchRecord]:
        query = select(models.Match).where(
            models.Match.status == MatchStatus.COMPLETED.value
        )
        if player_id is not None:
            query = query.where(
                or_(
                    models.Match.player1_id == player_id,
                    models.Match.player2_id == player_id,
                )
            )
        # A fixed secondary order keeps same-timestamp matches stable
        query = query.order_by(
            models.Match.completed_date.asc(),
            models.Match.created_at.asc(),
            models.Match.id.asc(),
        )
        result = await self._db.execute(query)
        records = [match_to_record(match) for match in result.scalars().all()]
        logger.debug(
            "Fetched completed matches",
            extra={"player_id": player_id, "match_count": len(records)},
        )
        return records

    async def completed_player_ids(self) -> list[str]:
        completed = models.Match.status == MatchStatus.COMPLETED.value
        query = union(
            select(models.Match.player1_id.label("player_id")).where(completed),
            select(models.Match.player2_id.label("player_id")).where(completed),
        )
        result = await self._db.execute(query)
        return sorted(result.scalars().all())


class InMemoryMatchRepository:
    """MatchRepository over a fixed list of records (scripts and tests)."""

    def __init__(self, matches: Iterable[MatchRecord | Mapping[str, Any]]) -> None:
        self._matches = [
            m if isinstance(m, MatchRecord) else MatchRecord.model_validate(dict(m))
            for m in matches
        ]

    async def fetch_completed_matches(
        self, player_id: str | None = None
    ) -> list[MatchRecord]:
        return [
            m
            for m in self._matches
            if m.status == MatchStatus.COMPLETED
            and (player_id is None or player_id in (m.player1_id, m.player2_id))
        ]

    async def completed_player_ids(self) -> list[str]:
        player_ids: set[str] = set()
        for m in await self.fetch_completed_matches():
            player_ids.update(pid for pid in (m.player1_id, m.player2_id) if pid)
        return sorted(player_ids)
