# src/pongstats/schemas/__init__.py

"""Pydantic schemas for API validation and serialization."""

from .match import (
    MatchBase,
    MatchCreate,
    MatchRead,
    MatchRecord,
    MatchScoreUpdate,
    MatchStatus,
)
from .player import PlayerBase, PlayerCreate, PlayerRead, PlayerUpdate
from .stats import (
    BreakdownStats,
    LeaderboardEntry,
    LeaderboardSortField,
    PlayerStats,
    PlayerStatsRead,
    ProfileStats,
    StreakType,
)

__all__ = [
    # Match
    "MatchBase",
    "MatchCreate",
    "MatchRead",
    "MatchRecord",
    "MatchScoreUpdate",
    "MatchStatus",
    # Player
    "PlayerBase",
    "PlayerCreate",
    "PlayerRead",
    "PlayerUpdate",
    # Stats
    "BreakdownStats",
    "LeaderboardEntry",
    "LeaderboardSortField",
    "PlayerStats",
    "PlayerStatsRead",
    "ProfileStats",
    "StreakType",
]
