# tests/test_cache.py

"""Unit tests for the in-memory stats cache."""

from pongstats.schemas.stats import PlayerStats
from pongstats.stats.cache import InMemoryStatsCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_set_and_get():
    cache = InMemoryStatsCache()
    stats = PlayerStats(player_id="A", total_wins=3, total_matches=3)

    cache.set("A", stats)

    assert cache.get("A") == stats
    assert cache.get("B") is None
    assert "A" in cache
    assert len(cache) == 1


def test_invalidate_removes_only_the_named_players():
    cache = InMemoryStatsCache()
    for player_id in ("A", "B", "C"):
        cache.set(player_id, PlayerStats(player_id=player_id))

    cache.invalidate("A", "B", "missing")

    assert cache.get("A") is None
    assert cache.get("B") is None
    assert cache.get("C") is not None


def test_clear():
    cache = InMemoryStatsCache()
    cache.set("A", PlayerStats(player_id="A"))

    cache.clear()

    assert len(cache) == 0


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = InMemoryStatsCache(ttl_seconds=60, clock=clock)
    cache.set("A", PlayerStats(player_id="A"))

    clock.now = 59.0
    assert cache.get("A") is not None

    clock.now = 61.0
    assert cache.get("A") is None
    assert "A" not in cache


def test_separate_caches_do_not_share_entries():
    first = InMemoryStatsCache()
    second = InMemoryStatsCache()

    first.set("A", PlayerStats(player_id="A"))

    assert second.get("A") is None
