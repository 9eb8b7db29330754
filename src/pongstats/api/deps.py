# src/pongstats/api/deps.py

"""Shared FastAPI dependencies."""

from fastapi import Request

from pongstats.stats.cache import StatsCache


def get_stats_cache(request: Request) -> StatsCache:
    """The stats cache owned by the running application."""
    return request.app.state.stats_cache  # type: ignore[no-any-return]
