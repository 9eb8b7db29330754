# src/pongstats/stats/__init__.py

"""Pure statistics aggregation over match records."""

from .aggregator import (
    DEFAULT_WEIGHTS,
    AggregationResult,
    BatchAggregationResult,
    RankingWeights,
    calculate_ranking_score,
    compute_all_players_stats,
    compute_stats,
)
from .cache import InMemoryStatsCache, StatsCache

__all__ = [
    "DEFAULT_WEIGHTS",
    "AggregationResult",
    "BatchAggregationResult",
    "InMemoryStatsCache",
    "RankingWeights",
    "StatsCache",
    "calculate_ranking_score",
    "compute_all_players_stats",
    "compute_stats",
]
