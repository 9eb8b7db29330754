# src/pongstats/schemas/match.py

"""Pydantic schemas for the Match resource."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .player import PlayerRead


class MatchStatus(str, Enum):
    """Lifecycle states of a match."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Scores above this are rejected when recorded through the API
MAX_SCORE = 50


def parse_timestamp(value: Any) -> datetime | None:
    """Best-effort conversion of a stored timestamp to a datetime.

    Accepts datetimes, dates, ISO-8601 strings, epoch seconds and Firestore
    style ``{"seconds": ..., "nanoseconds": ...}`` dicts (with or without
    the leading underscore). Anything else yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    try:
        if isinstance(value, dict):
            seconds = value.get("seconds", value.get("_seconds"))
            if seconds is None:
                return None
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return datetime.fromtimestamp(
                float(seconds) + float(nanos) / 1e9, tz=timezone.utc
            )
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        if isinstance(value, str) and value.strip():
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (TypeError, ValueError, OverflowError, OSError):
        return None

    return None


# ===============================================
# == Aggregation Input
# ===============================================


class MatchRecord(BaseModel):
    """A match as seen by the stats aggregator.

    Validation is deliberately lenient: scores are kept as raw values and
    coerced later, unparseable dates become None, and both snake_case and
    the legacy camelCase keys (``player1Id``, ``completedDate``) are accepted.
    """

    id: str
    player1_id: str | None = None
    player2_id: str | None = None
    player1_score: Any = None
    player2_score: Any = None
    winner_id: str | None = None
    loser_id: str | None = None
    status: str | None = None
    completed_date: datetime | None = None
    location: str | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator(
        "player1_id", "player2_id", "winner_id", "loser_id", mode="before"
    )
    @classmethod
    def _normalize_player_ref(cls, value: Any) -> str | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str):
            return value or None
        return None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> str | None:
        if isinstance(value, Enum):
            value = value.value
        return value if isinstance(value, str) else None

    @field_validator("completed_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @field_validator("location", mode="before")
    @classmethod
    def _blank_location(cls, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip() or None


# ===============================================
# == API Schemas
# ===============================================


class MatchBase(BaseModel):
    """Shared properties for a match."""

    player1_id: str = Field(..., min_length=1, max_length=128)
    player2_id: str = Field(..., min_length=1, max_length=128)
    location: str | None = Field(default=None, max_length=100)
    scheduled_date: datetime | None = None


class MatchCreate(MatchBase):
    """Properties to receive via API when scheduling a match."""

    pass


class MatchScoreUpdate(BaseModel):
    """Final score submitted for a match.

    `completed_date` defaults to the time the score is recorded; supplying it
    is useful when importing historical results.
    """

    player1_score: int = Field(..., ge=0, le=MAX_SCORE)
    player2_score: int = Field(..., ge=0, le=MAX_SCORE)
    completed_date: datetime | None = None


class MatchRead(MatchBase):
    """Properties to return to the client for a match."""

    id: str
    status: MatchStatus
    player1_score: int | None = None
    player2_score: int | None = None
    winner_id: str | None = None
    loser_id: str | None = None
    completed_date: datetime | None = None
    created_at: datetime

    player1: PlayerRead | None = None
    player2: PlayerRead | None = None

    model_config = ConfigDict(from_attributes=True)
