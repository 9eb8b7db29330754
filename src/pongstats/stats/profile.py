# src/pongstats/stats/profile.py

"""Extra analytics for a player's profile page.

All functions take the determined outcomes produced by
`aggregator.resolve_outcomes` (ascending by completion date), so they agree
with the base stats on which matches count and who won them.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any, cast

from pongstats.schemas.stats import (
    Achievement,
    BreakdownStats,
    OpponentStats,
    PlayerStats,
    ProfileStats,
    RecentMatch,
    ScoreAnalysis,
    StreakType,
    TrendPoint,
)

from .aggregator import (
    MatchOutcome,
    breakdown,
    opponent_of,
    player_scores,
    resolve_outcomes,
    stats_from_outcomes,
    timeline_key,
)

DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)
TIME_SLOTS = ("morning", "afternoon", "evening")

# Point margins that make a match "close" or a "blowout"
CLOSE_MATCH_MARGIN = 3
BLOWOUT_MARGIN = 10

# (id, name, description, minimum wins)
WIN_MILESTONES = (
    ("first_win", "First Victory", "Won your first match", 1),
    ("five_wins", "Getting Started", "Won 5 matches", 5),
    ("ten_wins", "Double Digits", "Won 10 matches", 10),
    ("quarter_century", "Quarter Century", "Won 25 matches", 25),
    ("half_century", "Half Century", "Won 50 matches", 50),
)
STREAK_MILESTONES = (
    ("three_streak", "Hot Streak", "Won 3 matches in a row", 3),
    ("five_streak", "On Fire", "Won 5 matches in a row", 5),
)


def _time_slot(moment: datetime) -> str:
    if 6 <= moment.hour < 12:
        return "morning"
    if 12 <= moment.hour < 18:
        return "afternoon"
    return "evening"


def _dated(outcomes: Iterable[MatchOutcome]) -> list[MatchOutcome]:
    return [o for o in outcomes if o.match.completed_date is not None]


def _with_all_buckets(
    stats: dict[str, BreakdownStats], buckets: Iterable[str]
) -> dict[str, BreakdownStats]:
    return {bucket: stats.get(bucket, BreakdownStats()) for bucket in buckets}


def opponent_stats(
    outcomes: list[MatchOutcome], player_id: str
) -> dict[str, OpponentStats]:
    """Head-to-head record against every opponent faced."""
    tallies: dict[str, dict[str, int]] = {}
    for outcome in outcomes:
        opponent = opponent_of(outcome.match, player_id)
        if opponent is None:
            continue
        tally = tallies.setdefault(
            opponent,
            {"wins": 0, "losses": 0, "points_for": 0, "points_against": 0},
        )
        tally["wins" if outcome.won else "losses"] += 1
        scores = player_scores(outcome.match, player_id)
        if scores is not None:
            tally["points_for"] += scores[0]
            tally["points_against"] += scores[1]

    result = {}
    for opponent, tally in tallies.items():
        matches = tally["wins"] + tally["losses"]
        result[opponent] = OpponentStats(
            wins=tally["wins"],
            losses=tally["losses"],
            matches=matches,
            win_rate=round(tally["wins"] / matches * 100, 2),
            avg_points_for=round(tally["points_for"] / matches, 1),
            avg_points_against=round(tally["points_against"] / matches, 1),
        )
    return result


def time_of_day_stats(outcomes: list[MatchOutcome]) -> dict[str, BreakdownStats]:
    """Morning [06-12), afternoon [12-18), evening otherwise."""
    stats = breakdown(
        _dated(outcomes),
        lambda match: _time_slot(match.completed_date),  # type: ignore[arg-type]
    )
    return _with_all_buckets(stats, TIME_SLOTS)


def day_of_week_stats(outcomes: list[MatchOutcome]) -> dict[str, BreakdownStats]:
    stats = breakdown(
        _dated(outcomes),
        lambda match: DAY_NAMES[match.completed_date.weekday()],  # type: ignore[union-attr]
    )
    return _with_all_buckets(stats, DAY_NAMES)


def score_analysis(outcomes: list[MatchOutcome], player_id: str) -> ScoreAnalysis:
    """Average points and how often matches were close or lopsided."""
    scored = [
        scores
        for scores in (player_scores(o.match, player_id) for o in outcomes)
        if scores is not None
    ]
    if not scored:
        return ScoreAnalysis()

    total = len(scored)
    margins = [abs(points_for - against) for points_for, against in scored]
    close_matches = sum(1 for margin in margins if margin <= CLOSE_MATCH_MARGIN)
    blowouts = sum(1 for margin in margins if margin >= BLOWOUT_MARGIN)

    return ScoreAnalysis(
        avg_points_for=round(sum(s[0] for s in scored) / total, 1),
        avg_points_against=round(sum(s[1] for s in scored) / total, 1),
        close_matches=close_matches,
        blowouts=blowouts,
        close_match_rate=round(close_matches / total * 100, 2),
        blowout_rate=round(blowouts / total * 100, 2),
    )


def performance_trend(
    outcomes: list[MatchOutcome], days: int = 30, now: datetime | None = None
) -> list[TrendPoint]:
    """Weekly win rate over the last `days` days, weeks starting on Sunday."""
    now = now or datetime.now(timezone.utc)
    cutoff = timeline_key(now - timedelta(days=days))

    weeks: dict[str, list[int]] = {}
    for outcome in _dated(outcomes):
        played = cast(datetime, outcome.match.completed_date)
        if timeline_key(played) < cutoff:
            continue
        week_start = played.date() - timedelta(days=(played.weekday() + 1) % 7)
        tally = weeks.setdefault(week_start.isoformat(), [0, 0])
        tally[0 if outcome.won else 1] += 1

    return [
        TrendPoint(
            week=week,
            win_rate=round(wins / (wins + losses) * 100, 2),
            matches=wins + losses,
        )
        for week, (wins, losses) in sorted(weeks.items())
    ]


def detailed_recent_form(
    outcomes: list[MatchOutcome], player_id: str, count: int = 10
) -> list[RecentMatch]:
    """The latest `count` matches, most recent first, with their scores."""
    recent = []
    for outcome in outcomes[::-1][:count]:
        scores = player_scores(outcome.match, player_id)
        recent.append(
            RecentMatch(
                match_id=outcome.match.id,
                date=outcome.match.completed_date,
                won=outcome.won,
                player_score=scores[0] if scores else None,
                opponent_score=scores[1] if scores else None,
                opponent_id=opponent_of(outcome.match, player_id),
                location=outcome.match.location,
                score_diff=scores[0] - scores[1] if scores else None,
            )
        )
    return recent


def achievements(stats: PlayerStats) -> list[Achievement]:
    """Achievements unlocked by a player's current stats."""
    unlocked = [
        Achievement(id=aid, name=name, description=description)
        for aid, name, description, wins in WIN_MILESTONES
        if stats.total_wins >= wins
    ]
    if stats.streak_type == StreakType.WINS:
        unlocked.extend(
            Achievement(id=aid, name=name, description=description)
            for aid, name, description, streak in STREAK_MILESTONES
            if stats.current_streak >= streak
        )
    if stats.win_rate >= 70 and stats.total_matches >= 10:
        unlocked.append(
            Achievement(
                id="high_win_rate",
                name="Dominator",
                description="70%+ win rate with 10+ matches",
            )
        )
    if stats.total_matches >= 20:
        unlocked.append(
            Achievement(
                id="active_player",
                name="Active Player",
                description="Played 20+ matches",
            )
        )
    return unlocked


def build_profile_stats(
    player_id: str, matches: Iterable[Any], now: datetime | None = None
) -> ProfileStats:
    """Base stats plus every profile analytic, from a single pass over the data."""
    outcomes, skipped = resolve_outcomes(player_id, matches)
    base = stats_from_outcomes(player_id, outcomes)

    return ProfileStats(
        **base.model_dump(),
        skipped_match_ids=skipped,
        opponent_stats=opponent_stats(outcomes, player_id),
        time_of_day_stats=time_of_day_stats(outcomes),
        day_of_week_stats=day_of_week_stats(outcomes),
        score_analysis=score_analysis(outcomes, player_id),
        performance_trend=performance_trend(outcomes, now=now),
        detailed_recent_form=detailed_recent_form(outcomes, player_id),
        achievements=achievements(base),
    )
