"""
Score store interface

The scoring service only talks to storage through this capability set, so
the same pipeline runs on the SQL database (SQLite or PostgreSQL) or on the
in-process store. STORAGE_BACKEND selects the implementation.
"""

import abc
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from focus_arena.utils.timezone_utils import get_utc_time


@dataclass(frozen=True)
class NewScore:
    """A validated, scored and season-tagged submission ready to persist"""

    user_id: int
    game_id: str
    raw_score: float
    points_earned: int
    submitted_at: datetime
    season_id: Optional[int] = None


@dataclass(frozen=True)
class ScoreRecord:
    id: int
    user_id: int
    game_id: str
    raw_score: float
    points_earned: int
    submitted_at: datetime
    season_id: Optional[int] = None

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "game_id": self.game_id,
            "score": self.raw_score,
            "points_earned": self.points_earned,
            "played_at": self.submitted_at.isoformat(),
            "season_id": self.season_id,
        }


@dataclass
class SeasonRecord:
    id: int
    name: str
    start_date: datetime
    end_date: datetime
    description: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=get_utc_time)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class TaskRecord:
    id: int
    task_date: date
    slot: int
    game_id: str
    target_threshold: float
    points_reward: int
    description: Optional[str] = None

    def to_dict(self, completed=None):
        data = {
            "id": self.id,
            "task_date": self.task_date.isoformat(),
            "game_id": self.game_id,
            "target": self.target_threshold,
            "points_reward": self.points_reward,
            "description": self.description,
        }
        if completed is not None:
            data["completed"] = completed
        return data


@dataclass(frozen=True)
class CompletionRecord:
    user_id: int
    task_id: int
    completed: bool
    completed_at: datetime


class ScoreStore(abc.ABC):
    """Persistence operations the scoring core depends on"""

    # Scores

    @abc.abstractmethod
    def insert_score(self, new_score):
        """
        Persist a NewScore and credit its points_earned to the user's balance.

        The record and the credit are written together or not at all.

        Raises:
            UnknownUserError: the user has no balance to credit
            StorageUnavailable: nothing was written
        """

    @abc.abstractmethod
    def query_scores(self, game_id=None, season_id=None, user_id=None, since=None, until=None):
        """Return score records matching every given filter; since/until are [since, until)"""

    @abc.abstractmethod
    def user_history(self, user_id, game_id=None, limit=10):
        """Return a user's most recent records, newest first"""

    @abc.abstractmethod
    def recent_scores(self, limit=100, game_id=None, user_id=None):
        """Return the most recent records across all users, newest first"""

    @abc.abstractmethod
    def delete_score(self, score_id):
        """Delete one score record; return True if it existed. Balances are kept."""

    # Points balance

    @abc.abstractmethod
    def get_points(self, user_id):
        """Return a user's point balance"""

    @abc.abstractmethod
    def set_points(self, user_id, points):
        """Overwrite a user's point balance, raising UnknownUserError if there is none"""

    @abc.abstractmethod
    def total_points(self):
        """Sum of every user's point balance"""

    # Users

    @abc.abstractmethod
    def delete_user_records(self, user_id):
        """Remove a user's scores, completions and balance"""

    # Seasons

    @abc.abstractmethod
    def list_seasons(self):
        """Return all seasons, newest created first"""

    @abc.abstractmethod
    def get_season(self, season_id):
        """Return a season or None"""

    @abc.abstractmethod
    def create_season(self, name, start_date, end_date, description=None, is_active=True):
        """Create and return a season"""

    @abc.abstractmethod
    def update_season(self, season_id, patch):
        """Apply a SeasonPatch; return the season or None if it does not exist"""

    @abc.abstractmethod
    def delete_season(self, season_id):
        """Delete a season, untagging its scores; return True if it existed"""

    # Daily tasks

    @abc.abstractmethod
    def list_tasks_for_date(self, task_date):
        """Return the tasks for a calendar date, in slot order"""

    @abc.abstractmethod
    def get_task(self, task_id):
        """Return a task or None"""

    @abc.abstractmethod
    def insert_tasks_if_absent(self, task_date, templates):
        """
        Atomically create the task set for task_date unless one exists.

        Returns:
            (tasks, created) where created is False if another caller won
        """

    @abc.abstractmethod
    def delete_task(self, task_id):
        """Delete a task and its completions; return True if it existed"""

    # Completions

    @abc.abstractmethod
    def insert_or_get_completion(self, user_id, task_id, reward=0):
        """
        Atomically mark (user_id, task_id) completed and credit reward.

        The credit is written in the same transaction as the completion, so
        a failure leaves neither behind and the call can be retried.

        Returns:
            (completion, created) where created is True only for the caller
            that actually flipped the task to completed and was credited
        """

    @abc.abstractmethod
    def list_completions(self, user_id, task_ids=None):
        """Return a user's completion records, optionally for given tasks"""

    @abc.abstractmethod
    def completed_task_history(self, user_id, limit=10):
        """Return (task, completion) pairs, most recently completed first"""


def create_score_store(app):
    """Build the score store selected by STORAGE_BACKEND"""
    backend = app.config.get("STORAGE_BACKEND", "sql").lower()

    if backend == "memory":
        from focus_arena.services.memory_store import MemoryScoreStore

        return MemoryScoreStore()

    if backend == "sql":
        from focus_arena import db
        from focus_arena.services.sql_store import SqlScoreStore

        return SqlScoreStore(db.session)

    raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r}")
