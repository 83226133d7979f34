"""
Focus Arena Scoring Service

Binds the pure scoring core (catalog, points, ranking, task rules, season
window) to a ScoreStore and runs the score submission pipeline:

    validate -> points + season tag -> persist and credit -> task completion

Validation happens before anything is written. The store writes each record
together with the credit it earns, so a failure never leaves one without the
other.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from focus_arena.services.score_store import NewScore
from focus_arena.utils import ranking, task_rules
from focus_arena.utils.exceptions import StorageUnavailable
from focus_arena.utils.game_catalog import resolve_game
from focus_arena.utils.ranking import ALL_SEASONS
from focus_arena.utils.scoring import calculate_points, validate_score
from focus_arena.utils.season_window import select_active_season
from focus_arena.utils.timezone_utils import day_bounds_utc, get_local_date, get_utc_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    task_id: int
    granted: bool
    points_reward: int = 0

    @property
    def already_completed(self):
        return not self.granted


@dataclass
class SubmissionResult:
    record: object
    points_earned: int
    season_id: Optional[int] = None
    completed_tasks: List[object] = field(default_factory=list)
    task_reward: int = 0

    @property
    def total_points(self):
        return self.points_earned + self.task_reward

    def to_dict(self):
        return {
            "points_earned": self.points_earned,
            "task_reward": self.task_reward,
            "total_points": self.total_points,
            "season_id": self.season_id,
            "completed_tasks": [task.to_dict() for task in self.completed_tasks],
            "score": self.record.to_dict(),
        }


class ScoringService:
    """Scoring, ranking and daily task operations for the web layer"""

    def __init__(self, store, timezone_name="UTC", daily_task_count=3):
        self.store = store
        self.timezone_name = timezone_name
        self.daily_task_count = daily_task_count

    # Points and seasons

    def compute_points(self, game_id, raw_score):
        return calculate_points(game_id, raw_score)

    def select_active_season(self, now=None):
        return select_active_season(now or get_utc_time(), self.store.list_seasons())

    def today(self, now=None):
        return get_local_date(now, self.timezone_name)

    # Leaderboards

    def build_leaderboard(self, game_id, scope=ALL_SEASONS, limit=20):
        """Best score per user for one game, over all records or one season"""
        resolve_game(game_id)
        season_id = None if scope in (None, ALL_SEASONS) else scope
        records = self.store.query_scores(game_id=game_id, season_id=season_id)
        return ranking.rank_game(game_id, records, scope=scope, limit=limit)

    def build_total_leaderboard(self, limit=50, season_id=None):
        """Sum of points earned from scores per user, optionally within a season"""
        records = self.store.query_scores(season_id=season_id)
        return ranking.rank_points(records, limit=limit)

    def build_today_leaderboard(self, limit=20, now=None):
        """Sum of points earned per user on submissions made today"""
        since, until = day_bounds_utc(self.today(now), self.timezone_name)
        records = self.store.query_scores(since=since, until=until)
        return ranking.rank_points(records, limit=limit)

    # Daily tasks

    def ensure_daily_tasks(self, today=None, rng=None):
        """
        Create today's task set if it does not exist yet.

        Safe to call from every request: the store's check-or-create is
        atomic, so concurrent first calls of the day produce one set.

        Returns:
            (tasks, created)
        """
        today = today or self.today()
        existing = self.store.list_tasks_for_date(today)
        if existing:
            return existing, False

        templates = task_rules.choose_templates(self.daily_task_count, rng=rng)
        tasks, created = self.store.insert_tasks_if_absent(today, templates)
        if created:
            logger.info(
                f"Generated {len(tasks)} daily tasks for {today}: "
                + ", ".join(f"{t.game_id}@{t.target_threshold}" for t in tasks)
            )
        return tasks, created

    def tasks_for_user(self, user_id, today=None):
        """Today's tasks paired with whether user_id has completed them"""
        tasks, _ = self.ensure_daily_tasks(today)
        done = task_rules.completed_task_ids(
            user_id, self.store.list_completions(user_id, [t.id for t in tasks])
        )
        return [(task, task.id in done) for task in tasks]

    def evaluate_task_completion(self, user_id, game_id, raw_score, today=None):
        """Return today's tasks this score satisfies that user_id has not completed"""
        today = today or self.today()
        tasks = self.store.list_tasks_for_date(today)
        if not tasks:
            return []

        completions = self.store.list_completions(user_id, [t.id for t in tasks])
        return task_rules.find_satisfiable_tasks(
            user_id, game_id, raw_score, tasks, completions, today
        )

    def complete_task(self, user_id, task_id):
        """
        Mark a task completed for a user and credit its reward once.

        Returns:
            CompletionResult, or None if the task does not exist. A repeat call
            returns granted=False with no reward.
        """
        task = self.store.get_task(task_id)
        if task is None:
            return None

        _, created = self.store.insert_or_get_completion(
            user_id, task_id, reward=task.points_reward
        )
        if not created:
            logger.debug(f"Task {task_id} already completed by user {user_id}")
            return CompletionResult(task_id=task_id, granted=False)

        logger.info(
            f"User {user_id} completed task {task_id} (+{task.points_reward} points)"
        )
        return CompletionResult(
            task_id=task_id, granted=True, points_reward=task.points_reward
        )

    # Submission pipeline

    def submit_score(self, user_id, game_id, raw_score, now=None):
        """
        Score, tag, persist and reward one submission.

        Raises:
            UnknownGameError, InvalidScoreError: before anything is stored
            UnknownUserError: user_id has no account; nothing is stored
            StorageUnavailable: the record could not be written; nothing is credited
        """
        resolve_game(game_id)
        score = validate_score(raw_score)
        now = now or get_utc_time()

        points = self.compute_points(game_id, score)
        season = self.select_active_season(now)
        season_id = season.id if season else None

        record = self.store.insert_score(
            NewScore(
                user_id=user_id,
                game_id=game_id,
                raw_score=score,
                points_earned=points,
                submitted_at=now,
                season_id=season_id,
            )
        )

        result = SubmissionResult(record=record, points_earned=points, season_id=season_id)

        for task in self.evaluate_task_completion(user_id, game_id, score, self.today(now)):
            try:
                completion = self.complete_task(user_id, task.id)
            except StorageUnavailable:
                # The score is stored; the task stays open for the next qualifying score
                logger.warning(f"Could not complete task {task.id} for user {user_id}")
                continue
            if completion and completion.granted:
                result.completed_tasks.append(task)
                result.task_reward += completion.points_reward

        logger.info(
            f"User {user_id} scored {score} in {game_id}: {points} points"
            f" (+{result.task_reward} task reward, season={season_id})"
        )
        return result

    # History and statistics

    def user_history(self, user_id, game_id=None, limit=10):
        if game_id is not None:
            resolve_game(game_id)
        return self.store.user_history(user_id, game_id=game_id, limit=limit)

    def task_history(self, user_id, limit=10):
        return self.store.completed_task_history(user_id, limit=limit)

    def user_stats(self, user_id):
        records = self.store.query_scores(user_id=user_id)
        completions = self.store.list_completions(user_id)
        return {
            "total_games": len(records),
            "total_points_earned": sum(r.points_earned for r in records),
            "completed_tasks": sum(1 for c in completions if c.completed),
            "best_scores": ranking.best_scores_by_game(records),
            "points": self.store.get_points(user_id),
        }

    def season_stats(self, season_id):
        records = self.store.query_scores(season_id=season_id)
        return {
            "total_scores": len(records),
            "total_points_awarded": sum(r.points_earned for r in records),
            "active_users": len({r.user_id for r in records}),
        }

    def platform_stats(self, total_users, now=None):
        """
        Site-wide counters for the admin dashboard.

        total_users comes from the account table, which lives outside the
        score store. Points awarded is the sum of current balances, so it
        includes task rewards and admin adjustments.
        """
        since, until = day_bounds_utc(self.today(now), self.timezone_name)
        today_records = self.store.query_scores(since=since, until=until)
        return {
            "total_users": total_users,
            "total_scores": len(self.store.query_scores()),
            "total_points_awarded": self.store.total_points(),
            "active_users_today": len({r.user_id for r in today_records}),
        }
