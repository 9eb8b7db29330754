# src/pongstats/schemas/stats.py

"""Player statistics, leaderboard and sync schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StreakType(str, Enum):
    """Kind of run a player's current streak is."""

    WINS = "wins"
    LOSSES = "losses"
    NONE = "none"


class BreakdownStats(BaseModel):
    """Win/loss tally for one bucket (a location, a month, ...)."""

    wins: int = Field(0, ge=0)
    losses: int = Field(0, ge=0)
    matches: int = Field(0, ge=0)
    win_rate: float = Field(0.0, ge=0.0, le=100.0)

    @classmethod
    def from_counts(cls, wins: int, losses: int) -> "BreakdownStats":
        matches = wins + losses
        rate = wins / matches * 100 if matches else 0.0
        return cls(wins=wins, losses=losses, matches=matches, win_rate=round(rate, 2))


class PlayerStats(BaseModel):
    """Derived statistics for one player.

    Always a pure function of that player's completed matches; stored copies
    are caches and can be recomputed at any time.

    Attributes:
        total_matches: Matches with a determinable winner
        win_rate: Win percentage (0 - 100)
        current_streak: Length of the run ending at the latest match
        streak_type: Whether that run is wins or losses
        max_win_streak: Longest run of wins ever
        recent_form: Latest outcomes, most recent first (True = win)
        recent_win_rate: Win percentage over the recent window
        ranking_score: Weighted leaderboard score
        average_score_diff: Mean points for minus points against
        location_stats: Per-location breakdown
        monthly_stats: Per-month breakdown keyed by "YYYY-MM"
        last_match_date: Completion date of the latest counted match
    """

    player_id: str
    total_matches: int = Field(0, ge=0)
    total_wins: int = Field(0, ge=0)
    total_losses: int = Field(0, ge=0)
    win_rate: float = Field(0.0, ge=0.0, le=100.0)
    current_streak: int = Field(0, ge=0)
    streak_type: StreakType = StreakType.NONE
    max_win_streak: int = Field(0, ge=0)
    recent_form: list[bool] = Field(default_factory=list)
    recent_win_rate: float = Field(0.0, ge=0.0, le=100.0)
    ranking_score: float = Field(0.0, ge=0.0)
    average_score_diff: float = 0.0
    location_stats: dict[str, BreakdownStats] = Field(default_factory=dict)
    monthly_stats: dict[str, BreakdownStats] = Field(default_factory=dict)
    last_match_date: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PlayerStatsRead(PlayerStats):
    """Stats as returned by the API, with data-quality info attached."""

    skipped_match_ids: list[str] = Field(default_factory=list)


# ===============================================
# == Profile Analytics
# ===============================================


class OpponentStats(BaseModel):
    """Head-to-head record against one opponent."""

    wins: int = 0
    losses: int = 0
    matches: int = 0
    win_rate: float = 0.0
    avg_points_for: float = 0.0
    avg_points_against: float = 0.0


class ScoreAnalysis(BaseModel):
    """Aggregate view of the points scored in a player's matches."""

    avg_points_for: float = 0.0
    avg_points_against: float = 0.0
    close_matches: int = 0
    blowouts: int = 0
    close_match_rate: float = 0.0
    blowout_rate: float = 0.0


class TrendPoint(BaseModel):
    """Win rate for one week of recent play."""

    week: str
    win_rate: float
    matches: int


class RecentMatch(BaseModel):
    """One entry of the detailed recent-form list."""

    match_id: str
    date: datetime | None = None
    won: bool
    player_score: int | None = None
    opponent_score: int | None = None
    opponent_id: str | None = None
    location: str | None = None
    score_diff: int | None = None


class Achievement(BaseModel):
    """An unlocked achievement."""

    id: str
    name: str
    description: str
    unlocked: bool = True


class ProfileStats(PlayerStatsRead):
    """Player stats plus the extra analytics shown on a profile page."""

    opponent_stats: dict[str, OpponentStats] = Field(default_factory=dict)
    time_of_day_stats: dict[str, BreakdownStats] = Field(default_factory=dict)
    day_of_week_stats: dict[str, BreakdownStats] = Field(default_factory=dict)
    score_analysis: ScoreAnalysis = Field(default_factory=ScoreAnalysis)
    performance_trend: list[TrendPoint] = Field(default_factory=list)
    detailed_recent_form: list[RecentMatch] = Field(default_factory=list)
    achievements: list[Achievement] = Field(default_factory=list)


# ===============================================
# == Leaderboard
# ===============================================


class LeaderboardSortField(str, Enum):
    """Fields the leaderboard can be ordered by."""

    TOTAL_WINS = "total_wins"
    RANKING_SCORE = "ranking_score"


class PlayerDisplay(BaseModel):
    """Minimal player info shown next to leaderboard rows."""

    id: str
    display_name: str = "Unknown Player"
    profile_image: str | None = None
    initials: str = "??"


class LeaderboardEntry(BaseModel):
    """Single entry in the leaderboard.

    Attributes:
        rank: Position in leaderboard (1-indexed)
        player: Display information for the player
        stats: The player's cached stats
    """

    rank: int = Field(..., ge=1, description="Position in leaderboard (1-indexed)")
    player: PlayerDisplay
    stats: PlayerStats


# ===============================================
# == Sync Results
# ===============================================


class PlayerSyncResult(BaseModel):
    """Outcome of recomputing one player's stats."""

    player_id: str
    success: bool
    stats: PlayerStats | None = None
    skipped_match_ids: list[str] = Field(default_factory=list)
    error: str | None = None


class BulkSyncResponse(BaseModel):
    """Outcome of a full reconciliation pass."""

    synced: int
    failed: int
    results: list[PlayerSyncResult]


class MatchSyncResponse(BaseModel):
    """Outcome of syncing both participants of a match."""

    match_id: str
    skipped: bool = False
    reason: str | None = None
    results: list[PlayerSyncResult] = Field(default_factory=list)


class StatsDiscrepancy(BaseModel):
    """Difference between a stored and a freshly computed stat."""

    stored: Any = None
    calculated: Any = None
    difference: float | None = None


class StatsValidationReport(BaseModel):
    """Result of comparing a player's cached stats with a fresh computation."""

    player_id: str
    has_discrepancies: bool
    discrepancies: dict[str, StatsDiscrepancy] = Field(default_factory=dict)
    stored_stats: PlayerStats | None = None
    calculated_stats: PlayerStats
    match_count: int
