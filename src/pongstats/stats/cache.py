# src/pongstats/stats/cache.py

"""Caller-owned caches for computed player stats.

A cache is created by whoever owns the process (the FastAPI app keeps one on
`app.state`) and passed explicitly to the services that read or write stats.
Completing a match invalidates both participants.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Protocol

from pongstats.schemas.stats import PlayerStats


class StatsCache(Protocol):
    """Minimal cache interface the stats service relies on."""

    def get(self, player_id: str) -> PlayerStats | None: ...

    def set(self, player_id: str, stats: PlayerStats) -> None: ...

    def invalidate(self, *player_ids: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryStatsCache:
    """Process-local stats cache with an optional time-to-live.

    Args:
        ttl_seconds: Entries older than this are treated as missing.
            None keeps entries until they are invalidated.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, PlayerStats]] = {}
        self._lock = threading.Lock()

    def get(self, player_id: str) -> PlayerStats | None:
        with self._lock:
            entry = self._entries.get(player_id)
            if entry is None:
                return None
            stored_at, stats = entry
            if self._ttl is not None and self._clock() - stored_at > self._ttl:
                del self._entries[player_id]
                return None
            return stats

    def set(self, player_id: str, stats: PlayerStats) -> None:
        with self._lock:
            self._entries[player_id] = (self._clock(), stats)

    def invalidate(self, *player_ids: str) -> None:
        with self._lock:
            for player_id in player_ids:
                self._entries.pop(player_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._entries
