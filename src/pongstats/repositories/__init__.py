# src/pongstats/repositories/__init__.py

"""Data access interfaces used by the stats layer."""

from .match_repository import (
    InMemoryMatchRepository,
    MatchRepository,
    SqlMatchRepository,
)

__all__ = ["InMemoryMatchRepository", "MatchRepository", "SqlMatchRepository"]
