# tests/test_profile.py

"""Unit tests for the profile analytics built on top of the aggregator."""

from datetime import datetime, timezone

from pongstats.schemas.stats import PlayerStats, StreakType
from pongstats.stats.aggregator import resolve_outcomes
from pongstats.stats.profile import (
    DAY_NAMES,
    achievements,
    build_profile_stats,
    performance_trend,
)

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_match(match_id, player1, player2, score1, score2, completed, winner=None):
    return {
        "id": match_id,
        "player1_id": player1,
        "player2_id": player2,
        "player1_score": score1,
        "player2_score": score2,
        "winner_id": winner,
        "status": "completed",
        "completed_date": completed,
    }


def profile_matches() -> list[dict]:
    """Five matches for player A, one of them undated and unscored."""
    return [
        # Monday morning, close win
        make_match("m1", "A", "B", 21, 19, datetime(2024, 3, 4, 9, 0)),
        # Wednesday afternoon, blowout loss
        make_match("m2", "C", "A", 21, 5, datetime(2024, 3, 6, 14, 0)),
        # Saturday evening, blowout win
        make_match("m3", "A", "B", 21, 10, datetime(2024, 3, 9, 20, 0)),
        # No date, no score
        make_match("m4", "A", "B", None, None, None, winner="A"),
        # Monday morning, well outside the trend window
        make_match("m5", "A", "D", 21, 14, datetime(2024, 1, 15, 7, 0)),
    ]


def test_profile_includes_the_base_stats():
    profile = build_profile_stats("A", profile_matches(), now=NOW)

    assert profile.total_matches == 5
    assert profile.total_wins == 4
    assert profile.current_streak == 1
    assert profile.streak_type == StreakType.WINS
    assert profile.max_win_streak == 3
    assert profile.skipped_match_ids == []


def test_opponent_stats():
    profile = build_profile_stats("A", profile_matches(), now=NOW)
    opponents = profile.opponent_stats

    assert set(opponents) == {"B", "C", "D"}
    assert opponents["B"].wins == 3
    assert opponents["B"].matches == 3
    assert opponents["B"].win_rate == 100.0
    # 42 points for and 29 against over three matches
    assert opponents["B"].avg_points_for == 14.0
    assert opponents["B"].avg_points_against == 9.7
    assert opponents["C"].losses == 1
    assert opponents["C"].win_rate == 0.0
    assert opponents["C"].avg_points_for == 5.0


def test_time_of_day_and_weekday_skip_undated_matches():
    profile = build_profile_stats("A", profile_matches(), now=NOW)

    times = profile.time_of_day_stats
    assert list(times) == ["morning", "afternoon", "evening"]
    assert times["morning"].wins == 2
    assert times["afternoon"].losses == 1
    assert times["evening"].wins == 1
    assert sum(bucket.matches for bucket in times.values()) == 4

    days = profile.day_of_week_stats
    assert tuple(days) == DAY_NAMES
    assert days["Monday"].wins == 2
    assert days["Wednesday"].losses == 1
    assert days["Saturday"].win_rate == 100.0
    assert days["Tuesday"].matches == 0


def test_score_analysis():
    analysis = build_profile_stats("A", profile_matches(), now=NOW).score_analysis

    # Points for 21 + 5 + 21 + 21, against 19 + 21 + 10 + 14
    assert analysis.avg_points_for == 17.0
    assert analysis.avg_points_against == 16.0
    # Margins 2, 16, 11, 7
    assert analysis.close_matches == 1
    assert analysis.blowouts == 2
    assert analysis.close_match_rate == 25.0
    assert analysis.blowout_rate == 50.0


def test_performance_trend_groups_recent_matches_by_sunday_week():
    trend = build_profile_stats("A", profile_matches(), now=NOW).performance_trend

    assert len(trend) == 1
    assert trend[0].week == "2024-03-03"
    assert trend[0].matches == 3
    assert trend[0].win_rate == 66.67


def test_performance_trend_orders_weeks():
    matches = [
        make_match("late", "A", "B", 21, 3, datetime(2024, 3, 8, 10, 0)),
        make_match("early", "A", "B", 3, 21, datetime(2024, 2, 26, 10, 0)),
    ]
    outcomes, _ = resolve_outcomes("A", matches)

    trend = performance_trend(outcomes, now=NOW)

    assert [point.week for point in trend] == ["2024-02-25", "2024-03-03"]
    assert [point.win_rate for point in trend] == [0.0, 100.0]


def test_performance_trend_is_empty_without_recent_matches():
    assert performance_trend([], now=NOW) == []


def test_detailed_recent_form_is_latest_first():
    recent = build_profile_stats("A", profile_matches(), now=NOW).detailed_recent_form

    assert [entry.match_id for entry in recent] == ["m3", "m2", "m1", "m5", "m4"]

    latest = recent[0]
    assert latest.won is True
    assert latest.player_score == 21
    assert latest.opponent_score == 10
    assert latest.score_diff == 11
    assert latest.opponent_id == "B"

    loss = recent[1]
    assert loss.won is False
    assert loss.player_score == 5
    assert loss.opponent_score == 21
    assert loss.score_diff == -16
    assert loss.opponent_id == "C"

    assert recent[-1].player_score is None
    assert recent[-1].date is None


def test_profile_achievements_reflect_the_stats():
    profile = build_profile_stats("A", profile_matches(), now=NOW)

    assert [a.id for a in profile.achievements] == ["first_win"]


def test_achievements_unlock_on_thresholds():
    stats = PlayerStats(
        player_id="A",
        total_matches=16,
        total_wins=12,
        total_losses=4,
        win_rate=75.0,
        current_streak=5,
        streak_type=StreakType.WINS,
    )

    unlocked = [a.id for a in achievements(stats)]

    assert unlocked == [
        "first_win",
        "five_wins",
        "ten_wins",
        "three_streak",
        "five_streak",
        "high_win_rate",
    ]


def test_losing_streaks_unlock_nothing():
    stats = PlayerStats(
        player_id="A",
        total_matches=25,
        total_wins=0,
        total_losses=25,
        current_streak=25,
        streak_type=StreakType.LOSSES,
    )

    assert [a.id for a in achievements(stats)] == ["active_player"]


def test_profile_for_player_without_matches():
    profile = build_profile_stats("A", [], now=NOW)

    assert profile.total_matches == 0
    assert profile.opponent_stats == {}
    assert profile.performance_trend == []
    assert profile.detailed_recent_form == []
    assert profile.achievements == []
    assert all(bucket.matches == 0 for bucket in profile.day_of_week_stats.values())
