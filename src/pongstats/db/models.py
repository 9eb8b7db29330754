# src/pongstats/db/models.py

"""Database models for the pongstats application."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, ForeignKey, String, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import (
    Mapped,
    declarative_base,
    declared_attr,
    mapped_column,
    relationship,
)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ===============================================
# Mixins for Common Columns
# ===============================================


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(
        default=None,
        onupdate=_utcnow,
        nullable=True,
    )


class VersionMixin:
    """Mixin providing optimistic locking via version column."""

    version: Mapped[int] = mapped_column(default=1, nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls) -> dict[str, Any]:
        # Every UPDATE checks and bumps the version; a stale row raises
        # StaleDataError at flush time.
        return {"version_id_col": cls.version}


# ===============================================
# Core Tables: Player and Match
# ===============================================


class Player(Base, TimestampMixin):
    """A registered player. The id is the uid issued by the auth provider."""

    __tablename__ = "players"
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(50), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(String, nullable=True)

    stats_record: Mapped["PlayerStatsRecord"] = relationship(
        back_populates="player", cascade="all, delete-orphan", uselist=False
    )

    def __init__(self, **kw: Any):
        super().__init__(**kw)


class Match(Base, TimestampMixin, VersionMixin):
    """A singles match between two players."""

    __tablename__ = "matches"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    player1_id: Mapped[str] = mapped_column(
        ForeignKey("players.id"), nullable=False, index=True
    )
    player2_id: Mapped[str] = mapped_column(
        ForeignKey("players.id"), nullable=False, index=True
    )
    player1_score: Mapped[int | None] = mapped_column(nullable=True)
    player2_score: Mapped[int | None] = mapped_column(nullable=True)
    winner_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    loser_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    # scheduled | in-progress | completed | cancelled
    status: Mapped[str] = mapped_column(
        String(16), default="scheduled", nullable=False, index=True
    )
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    scheduled_date: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_date: Mapped[datetime | None] = mapped_column(nullable=True, index=True)

    player1: Mapped["Player"] = relationship(foreign_keys=[player1_id])
    player2: Mapped["Player"] = relationship(foreign_keys=[player2_id])

    def __init__(self, **kw: Any):
        super().__init__(**kw)

    @property
    def participant_ids(self) -> tuple[str, str]:
        return self.player1_id, self.player2_id


# ===============================================
# Derived Data
# ===============================================


class PlayerStatsRecord(Base):
    """Cached PlayerStats for one player.

    The matches table is the source of truth; this row is rewritten in full
    whenever the player's stats are recomputed. `total_wins` and
    `ranking_score` are copied out of the JSON blob so the leaderboard can
    be ordered in SQL.
    """

    __tablename__ = "player_stats"
    player_id: Mapped[str] = mapped_column(
        ForeignKey("players.id"), primary_key=True
    )
    stats: Mapped[dict] = mapped_column(JSON, nullable=False)
    total_wins: Mapped[int] = mapped_column(default=0, nullable=False, index=True)
    ranking_score: Mapped[float] = mapped_column(
        default=0.0, nullable=False, index=True
    )
    last_synced_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    last_synced_match_count: Mapped[int] = mapped_column(default=0, nullable=False)

    player: Mapped["Player"] = relationship(back_populates="stats_record")

    def __init__(self, **kw: Any):
        super().__init__(**kw)

    @classmethod
    async def find_by_player(
        cls, db: AsyncSession, player_id: str
    ) -> "PlayerStatsRecord | None":
        """Find the stored stats row for a player."""
        result = await db.execute(select(cls).where(cls.player_id == player_id))
        return result.scalar_one_or_none()
