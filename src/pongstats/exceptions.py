# src/pongstats/exceptions.py

"""Custom exception hierarchy for pongstats.

This module provides a structured exception hierarchy that enables:
1. Proper HTTP status code mapping in API endpoints
2. Detailed error context for logging and debugging
3. Clear distinction between caller errors and data problems
"""

from __future__ import annotations

from typing import Any


class PongStatsError(Exception):
    """Base exception for all pongstats errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional context for logging/debugging
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Resource Not Found Errors (HTTP 404)
# =============================================================================


class ResourceNotFoundError(PongStatsError):
    """Base class for resource not found errors."""

    pass


class PlayerNotFoundError(ResourceNotFoundError):
    """Raised when a player ID does not exist."""

    def __init__(self, player_id: str) -> None:
        super().__init__(
            message=f"Player with ID {player_id} not found",
            details={"player_id": player_id},
        )


class MatchNotFoundError(ResourceNotFoundError):
    """Raised when a match ID does not exist."""

    def __init__(self, match_id: str) -> None:
        super().__init__(
            message=f"Match with ID {match_id} not found",
            details={"match_id": match_id},
        )


# =============================================================================
# Validation Errors (HTTP 422)
# =============================================================================


class ValidationError(PongStatsError):
    """Base class for validation errors."""

    pass


class InvalidPlayerIdError(ValidationError):
    """Raised when a stats computation is asked for an empty or non-string id.

    Distinguishes "caller passed a bad identifier" from "player has no data",
    which is a valid zeroed result.
    """

    def __init__(self, player_id: Any) -> None:
        super().__init__(
            message=f"Invalid player ID: {player_id!r}",
            details={"player_id": repr(player_id)},
        )


class SamePlayerError(ValidationError):
    """Raised when both sides of a match are the same player."""

    def __init__(self, player_id: str) -> None:
        super().__init__(
            message=f"A match needs two different players, got {player_id} twice",
            details={"player_id": player_id},
        )


class InvalidScoreError(ValidationError):
    """Raised when a submitted score is out of range."""

    def __init__(self, score: int, reason: str) -> None:
        super().__init__(
            message=f"Invalid score {score}: {reason}",
            details={"score": score, "reason": reason},
        )


class TiedScoreError(ValidationError):
    """Raised when a score would leave the match without a winner."""

    def __init__(self, score: int) -> None:
        super().__init__(
            message=f"Scores cannot be tied ({score}-{score})",
            details={"score": score},
        )


class InvalidMatchStateError(ValidationError):
    """Raised when a status transition is not allowed."""

    def __init__(self, match_id: str, current: str, action: str) -> None:
        super().__init__(
            message=f"Cannot {action} match {match_id} while it is {current}",
            details={"match_id": match_id, "status": current, "action": action},
        )


# =============================================================================
# Stats Errors (HTTP 500)
# =============================================================================


class StatsError(PongStatsError):
    """Base class for statistics computation errors."""

    pass


class StatsAggregationError(StatsError):
    """Raised when stats for a player could not be computed or stored."""

    def __init__(self, player_id: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to compute stats for player {player_id}: {reason}",
            details={"player_id": player_id, "reason": reason},
        )
