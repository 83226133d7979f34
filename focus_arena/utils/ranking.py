"""
Ranking Engine for Focus Arena

Pure functions over score records. A record is anything exposing user_id,
game_id, raw_score, points_earned, submitted_at and season_id (ORM rows and
the in-memory store's dataclasses both qualify).

Ties between a user's equal best scores go to the earliest submission, and
ties between users on the board go to whoever set the score first, then to
the lower user id.
"""

from dataclasses import dataclass
from datetime import datetime

from focus_arena.utils.game_catalog import resolve_game
from focus_arena.utils.timezone_utils import ensure_utc

ALL_SEASONS = "all"


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: int
    best_raw_score: float
    points_earned_at_best: int
    submitted_at: datetime

    def to_dict(self):
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "score": self.best_raw_score,
            "points_earned": self.points_earned_at_best,
            "played_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }


@dataclass(frozen=True)
class PointsEntry:
    rank: int
    user_id: int
    total_points: int
    games_played: int

    def to_dict(self):
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "total_points": self.total_points,
            "games_played": self.games_played,
        }


def _record_key(game, record):
    return (
        game.sort_key(record.raw_score),
        ensure_utc(record.submitted_at),
        record.user_id,
    )


def best_per_user(game, records):
    """Reduce records to each user's single best record for game"""
    best = {}
    for record in records:
        if record.game_id != game.id:
            continue
        current = best.get(record.user_id)
        if current is None or _record_key(game, record) < _record_key(game, current):
            best[record.user_id] = record
    return best


def in_scope(record, scope):
    """Check whether a record belongs to a leaderboard scope (all or a season id)"""
    if scope is None or scope == ALL_SEASONS:
        return True
    return record.season_id == scope


def rank_game(game_id, records, scope=ALL_SEASONS, limit=None):
    """
    Build the best-score-per-user leaderboard for one game.

    Args:
        game_id: Catalog game id (UnknownGameError if not found)
        records: Iterable of score records, may include other games
        scope: "all" or a season id
        limit: Maximum number of rows, None for no limit

    Returns:
        list of LeaderboardEntry, best first
    """
    game = resolve_game(game_id)
    scoped = (r for r in records if in_scope(r, scope))
    best = best_per_user(game, scoped)

    ordered = sorted(best.values(), key=lambda r: _record_key(game, r))
    if limit is not None:
        ordered = ordered[: max(limit, 0)]

    return [
        LeaderboardEntry(
            rank=position,
            user_id=record.user_id,
            best_raw_score=record.raw_score,
            points_earned_at_best=record.points_earned,
            submitted_at=record.submitted_at,
        )
        for position, record in enumerate(ordered, start=1)
    ]


def rank_points(records, limit=None):
    """
    Sum points_earned per user across every game and rank by the total.

    Adding a record can only raise a user's total, never lower it.
    """
    totals = {}
    counts = {}
    for record in records:
        totals[record.user_id] = totals.get(record.user_id, 0) + (record.points_earned or 0)
        counts[record.user_id] = counts.get(record.user_id, 0) + 1

    ordered = sorted(totals, key=lambda user_id: (-totals[user_id], user_id))
    if limit is not None:
        ordered = ordered[: max(limit, 0)]

    return [
        PointsEntry(
            rank=position,
            user_id=user_id,
            total_points=totals[user_id],
            games_played=counts[user_id],
        )
        for position, user_id in enumerate(ordered, start=1)
    ]


def best_scores_by_game(records):
    """Map game id -> best raw score across records (for user statistics)"""
    best = {}
    for record in records:
        game = resolve_game(record.game_id)
        current = best.get(game.id)
        if current is None or game.is_better(record.raw_score, current):
            best[game.id] = record.raw_score
    return best
