# src/pongstats/stats/aggregator.py

"""
Pure player-statistics aggregation.

Given a player id and a collection of match records, produce a PlayerStats
value: win/loss counts, streaks, the weighted ranking score and the
per-location / per-month breakdowns. No I/O, no logging, no shared state;
every call is independent and never mutates its input.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from pongstats import config
from pongstats.exceptions import InvalidPlayerIdError
from pongstats.schemas.match import MatchRecord, MatchStatus
from pongstats.schemas.stats import BreakdownStats, PlayerStats, StreakType

# Matches without a usable completion date sort (and bucket) here
EPOCH = datetime(1970, 1, 1)

UNKNOWN_LOCATION = "Unknown"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# ===============================================
# == Ranking Weights
# ===============================================


@dataclass(frozen=True)
class RankingWeights:
    """Tuning constants for the leaderboard ranking score.

    score = win_rate * win_rate_weight
          + min(total_wins * points_per_win, wins_cap) * wins_weight
          + (recent_win_rate - win_rate) * recent_form_weight

    floored at zero. The recent-form term is allowed to go negative.
    """

    win_rate_weight: float = 0.7
    wins_weight: float = 0.2
    points_per_win: int = 2
    # 20 wins worth of points
    wins_cap: int = 40
    recent_form_weight: float = 0.1


DEFAULT_WEIGHTS = RankingWeights()


def calculate_ranking_score(
    win_rate: float,
    total_wins: int,
    recent_win_rate: float,
    weights: RankingWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted composite used to order the leaderboard."""
    win_rate_score = win_rate * weights.win_rate_weight
    wins_score = (
        min(total_wins * weights.points_per_win, weights.wins_cap)
        * weights.wins_weight
    )
    recent_bonus = (recent_win_rate - win_rate) * weights.recent_form_weight
    return max(0.0, win_rate_score + wins_score + recent_bonus)


# ===============================================
# == Results
# ===============================================


@dataclass(frozen=True)
class MatchOutcome:
    """A completed match paired with its result for the subject player."""

    match: MatchRecord
    won: bool


@dataclass
class AggregationResult:
    """Stats for one player plus the ids of matches that had to be skipped.

    Skipped matches are completed matches involving the player where no
    winner could be determined (or the record could not be read at all).
    They are excluded from every count.
    """

    stats: PlayerStats
    skipped_match_ids: list[str] = field(default_factory=list)


@dataclass
class BatchAggregationResult:
    """Per-player outcome of `compute_all_players_stats`."""

    results: dict[str, AggregationResult] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.failures)


# ===============================================
# == Helpers
# ===============================================


def coerce_score(value: Any) -> int:
    """Read a stored score as an integer; anything non-numeric counts as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        found = _LEADING_INT.match(value)
        return int(found.group(1)) if found else 0
    return 0


def timeline_key(value: datetime | None) -> datetime:
    """Sort key for completion dates.

    Aware datetimes are compared in UTC, naive ones as given, and missing
    dates sort first.
    """
    if value is None:
        return EPOCH
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def month_key(value: datetime | None) -> str:
    """Calendar month of a completion date, from its own date components."""
    moment = value or EPOCH
    return f"{moment.year:04d}-{moment.month:02d}"


def location_key(match: MatchRecord) -> str:
    return match.location or UNKNOWN_LOCATION


def determine_winner(match: MatchRecord, player_id: str) -> bool | None:
    """
    Decide whether `player_id` won `match`.

    Sources, in priority order: the stored winner id, the scores, the stored
    loser id. With both scores present only the higher score wins, so a tie
    is a loss for both players. Returns None when none of them settles it.
    """
    if match.winner_id is not None:
        return match.winner_id == player_id

    if match.player1_score is not None and match.player2_score is not None:
        player1_score = coerce_score(match.player1_score)
        player2_score = coerce_score(match.player2_score)
        if match.player1_id == player_id:
            return player1_score > player2_score
        if match.player2_id == player_id:
            return player2_score > player1_score
        return None

    if match.loser_id is not None:
        return match.loser_id != player_id

    return None


def player_scores(match: MatchRecord, player_id: str) -> tuple[int, int] | None:
    """(points for, points against) from the player's side, if both are known."""
    if match.player1_score is None or match.player2_score is None:
        return None
    player1_score = coerce_score(match.player1_score)
    player2_score = coerce_score(match.player2_score)
    if match.player1_id == player_id:
        return player1_score, player2_score
    return player2_score, player1_score


def opponent_of(match: MatchRecord, player_id: str) -> str | None:
    return match.player2_id if match.player1_id == player_id else match.player1_id


def _require_player_id(player_id: Any) -> str:
    if not isinstance(player_id, str) or not player_id.strip():
        raise InvalidPlayerIdError(player_id)
    return player_id


def _to_record(item: Any) -> MatchRecord:
    if isinstance(item, MatchRecord):
        return item
    if isinstance(item, Mapping):
        return MatchRecord.model_validate(dict(item))
    return MatchRecord.model_validate(item, from_attributes=True)


def _raw_field(item: Any, snake: str, camel: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(snake, item.get(camel))
    return getattr(item, snake, None)


def _unreadable_for_player(item: Any, player_id: str) -> bool:
    """True when a record that failed validation still names the player."""
    return player_id in (
        _raw_field(item, "player1_id", "player1Id"),
        _raw_field(item, "player2_id", "player2Id"),
    )


def resolve_outcomes(
    player_id: str, matches: Iterable[Any]
) -> tuple[list[MatchOutcome], list[str]]:
    """
    Filter `matches` down to the player's completed ones and resolve results.

    Returns the determined outcomes in ascending completion order (stable,
    so records sharing a timestamp keep their input order) and the ids of
    the matches that had to be skipped.
    """
    player_id = _require_player_id(player_id)
    outcomes: list[MatchOutcome] = []
    skipped: list[str] = []

    for item in matches:
        try:
            record = _to_record(item)
        except PydanticValidationError:
            if _unreadable_for_player(item, player_id):
                skipped.append(str(_raw_field(item, "id", "id")))
            continue

        if record.status != MatchStatus.COMPLETED:
            continue
        if player_id not in (record.player1_id, record.player2_id):
            continue

        won = determine_winner(record, player_id)
        if won is None:
            skipped.append(record.id)
            continue
        outcomes.append(MatchOutcome(match=record, won=won))

    outcomes.sort(key=lambda outcome: timeline_key(outcome.match.completed_date))
    return outcomes, skipped


def breakdown(
    outcomes: Iterable[MatchOutcome], key: Callable[[MatchRecord], str]
) -> dict[str, BreakdownStats]:
    """Tally wins and losses into buckets chosen by `key`."""
    tallies: dict[str, list[int]] = {}
    for outcome in outcomes:
        tally = tallies.setdefault(key(outcome.match), [0, 0])
        tally[0 if outcome.won else 1] += 1
    return {
        bucket: BreakdownStats.from_counts(wins, losses)
        for bucket, (wins, losses) in tallies.items()
    }


def _win_rate(outcomes: list[MatchOutcome]) -> float:
    if not outcomes:
        return 0.0
    wins = sum(1 for outcome in outcomes if outcome.won)
    return wins / len(outcomes) * 100


def _average_score_diff(outcomes: list[MatchOutcome], player_id: str) -> float:
    diffs = []
    for outcome in outcomes:
        scores = player_scores(outcome.match, player_id)
        if scores is not None:
            diffs.append(scores[0] - scores[1])
    return sum(diffs) / len(diffs) if diffs else 0.0


# ===============================================
# == Public API
# ===============================================


def empty_stats(player_id: str) -> PlayerStats:
    """Zeroed stats for a player without any counted match."""
    return PlayerStats(player_id=player_id)


def stats_from_outcomes(
    player_id: str,
    outcomes: list[MatchOutcome],
    *,
    weights: RankingWeights = DEFAULT_WEIGHTS,
    recent_form_length: int = config.RECENT_FORM_LENGTH,
    recent_window: int = config.RECENT_WINDOW,
) -> PlayerStats:
    """Build PlayerStats from outcomes already sorted by completion date."""
    if not outcomes:
        return empty_stats(player_id)

    total_wins = sum(1 for outcome in outcomes if outcome.won)
    total_matches = len(outcomes)
    win_rate = _win_rate(outcomes)

    # One forward walk over the same ordering feeds both streak values.
    streak = 0
    max_win_streak = 0
    previous: bool | None = None
    for outcome in outcomes:
        streak = streak + 1 if outcome.won == previous else 1
        previous = outcome.won
        if outcome.won:
            max_win_streak = max(max_win_streak, streak)

    latest_first = outcomes[::-1]
    recent_win_rate = _win_rate(latest_first[:recent_window])
    ranking_score = calculate_ranking_score(
        win_rate, total_wins, recent_win_rate, weights
    )

    return PlayerStats(
        player_id=player_id,
        total_matches=total_matches,
        total_wins=total_wins,
        total_losses=total_matches - total_wins,
        win_rate=round(win_rate, 2),
        current_streak=streak,
        streak_type=StreakType.WINS if previous else StreakType.LOSSES,
        max_win_streak=max_win_streak,
        recent_form=[outcome.won for outcome in latest_first[:recent_form_length]],
        recent_win_rate=round(recent_win_rate, 2),
        ranking_score=round(ranking_score, 2),
        average_score_diff=round(_average_score_diff(outcomes, player_id), 2),
        location_stats=breakdown(outcomes, location_key),
        monthly_stats=breakdown(
            outcomes, lambda match: month_key(match.completed_date)
        ),
        last_match_date=outcomes[-1].match.completed_date,
    )


def compute_stats(
    player_id: str,
    matches: Iterable[Any],
    *,
    weights: RankingWeights = DEFAULT_WEIGHTS,
    recent_form_length: int = config.RECENT_FORM_LENGTH,
    recent_window: int = config.RECENT_WINDOW,
) -> AggregationResult:
    """
    Compute a player's statistics from a collection of matches.

    `matches` may contain MatchRecord instances, raw mappings (snake_case or
    camelCase keys) or attribute objects, and may include matches the player
    did not take part in. Only completed matches involving the player count.

    Raises:
        InvalidPlayerIdError: If `player_id` is empty or not a string.
    """
    outcomes, skipped = resolve_outcomes(player_id, matches)
    stats = stats_from_outcomes(
        player_id,
        outcomes,
        weights=weights,
        recent_form_length=recent_form_length,
        recent_window=recent_window,
    )
    return AggregationResult(stats=stats, skipped_match_ids=skipped)


def completed_participants(matches: Iterable[Any]) -> list[str]:
    """Every player id appearing in a readable completed match, sorted."""
    player_ids: set[str] = set()
    for item in matches:
        try:
            record = _to_record(item)
        except PydanticValidationError:
            continue
        if record.status != MatchStatus.COMPLETED:
            continue
        player_ids.update(
            pid for pid in (record.player1_id, record.player2_id) if pid
        )
    return sorted(player_ids)


def compute_all_players_stats(
    matches: Iterable[Any],
    player_ids: Iterable[str] | None = None,
    *,
    weights: RankingWeights = DEFAULT_WEIGHTS,
    recent_form_length: int = config.RECENT_FORM_LENGTH,
    recent_window: int = config.RECENT_WINDOW,
) -> BatchAggregationResult:
    """
    Compute stats for many players over one shared match collection.

    When `player_ids` is None, every participant of a completed match is
    included. A failure for one player is recorded in `failures` and does
    not stop the others.
    """
    matches = list(matches)
    if player_ids is None:
        player_ids = completed_participants(matches)

    batch = BatchAggregationResult()
    for player_id in player_ids:
        try:
            batch.results[player_id] = compute_stats(
                player_id,
                matches,
                weights=weights,
                recent_form_length=recent_form_length,
                recent_window=recent_window,
            )
        except Exception as e:
            batch.failures[str(player_id)] = str(e)
    return batch
