"""
In-process score store

Keeps everything in dictionaries behind a single lock. The lock is what makes
insert_or_get_completion and insert_tasks_if_absent atomic here, the way the
unique constraints do for the SQL store. Balances are written last, after
every step that can fail, so a credit never lands without its record.
"""

import itertools
import threading
from dataclasses import replace

from focus_arena.services.score_store import (
    CompletionRecord,
    ScoreRecord,
    ScoreStore,
    SeasonRecord,
    TaskRecord,
)
from focus_arena.utils.timezone_utils import ensure_utc, get_utc_time


class MemoryScoreStore(ScoreStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._scores = []
        self._seasons = {}
        self._tasks = {}
        self._completions = {}
        self._points = {}
        self._score_ids = itertools.count(1)
        self._season_ids = itertools.count(1)
        self._task_ids = itertools.count(1)

    def _credited_balance(self, user_id, amount):
        """Balance after crediting amount; the caller holds the lock and stores it"""
        return self._points.get(user_id, 0) + amount

    # Scores

    def insert_score(self, new_score):
        with self._lock:
            balance = self._credited_balance(new_score.user_id, new_score.points_earned)
            record = ScoreRecord(
                id=next(self._score_ids),
                user_id=new_score.user_id,
                game_id=new_score.game_id,
                raw_score=new_score.raw_score,
                points_earned=new_score.points_earned,
                submitted_at=ensure_utc(new_score.submitted_at),
                season_id=new_score.season_id,
            )
            self._scores.append(record)
            self._points[new_score.user_id] = balance
            return record

    def query_scores(self, game_id=None, season_id=None, user_id=None, since=None, until=None):
        since = ensure_utc(since)
        until = ensure_utc(until)
        with self._lock:
            records = list(self._scores)

        return [
            r
            for r in records
            if (game_id is None or r.game_id == game_id)
            and (season_id is None or r.season_id == season_id)
            and (user_id is None or r.user_id == user_id)
            and (since is None or r.submitted_at >= since)
            and (until is None or r.submitted_at < until)
        ]

    def user_history(self, user_id, game_id=None, limit=10):
        records = self.query_scores(game_id=game_id, user_id=user_id)
        records.sort(key=lambda r: (r.submitted_at, r.id), reverse=True)
        return records[:limit]

    def recent_scores(self, limit=100, game_id=None, user_id=None):
        records = self.query_scores(game_id=game_id, user_id=user_id)
        records.sort(key=lambda r: (r.submitted_at, r.id), reverse=True)
        return records[:limit]

    def delete_score(self, score_id):
        with self._lock:
            kept = [r for r in self._scores if r.id != score_id]
            removed = len(kept) != len(self._scores)
            self._scores = kept
            return removed

    # Points balance

    def get_points(self, user_id):
        with self._lock:
            return self._points.get(user_id, 0)

    def set_points(self, user_id, points):
        # Users live outside this store, so any id has a balance
        with self._lock:
            self._points[user_id] = points
            return points

    def total_points(self):
        with self._lock:
            return sum(self._points.values())

    # Users

    def delete_user_records(self, user_id):
        with self._lock:
            self._scores = [r for r in self._scores if r.user_id != user_id]
            self._completions = {
                key: c for key, c in self._completions.items() if key[0] != user_id
            }
            self._points.pop(user_id, None)

    # Seasons

    def list_seasons(self):
        with self._lock:
            seasons = list(self._seasons.values())
        return sorted(seasons, key=lambda s: (s.created_at, s.id), reverse=True)

    def get_season(self, season_id):
        with self._lock:
            return self._seasons.get(season_id)

    def create_season(self, name, start_date, end_date, description=None, is_active=True):
        with self._lock:
            season = SeasonRecord(
                id=next(self._season_ids),
                name=name,
                description=description,
                start_date=ensure_utc(start_date),
                end_date=ensure_utc(end_date),
                is_active=is_active,
            )
            self._seasons[season.id] = season
            return season

    def update_season(self, season_id, patch):
        with self._lock:
            season = self._seasons.get(season_id)
            if season is None:
                return None
            return patch.apply_to(season)

    def delete_season(self, season_id):
        with self._lock:
            if self._seasons.pop(season_id, None) is None:
                return False
            self._scores = [
                replace(r, season_id=None) if r.season_id == season_id else r
                for r in self._scores
            ]
            return True

    # Daily tasks

    def list_tasks_for_date(self, task_date):
        with self._lock:
            tasks = [t for t in self._tasks.values() if t.task_date == task_date]
        return sorted(tasks, key=lambda t: t.slot)

    def get_task(self, task_id):
        with self._lock:
            return self._tasks.get(task_id)

    def insert_tasks_if_absent(self, task_date, templates):
        with self._lock:
            existing = [t for t in self._tasks.values() if t.task_date == task_date]
            if existing:
                return sorted(existing, key=lambda t: t.slot), False

            created = []
            for slot, template in enumerate(templates):
                task = TaskRecord(
                    id=next(self._task_ids),
                    task_date=task_date,
                    slot=slot,
                    game_id=template.game_id,
                    target_threshold=template.target,
                    points_reward=template.reward,
                    description=template.description,
                )
                self._tasks[task.id] = task
                created.append(task)
            return created, True

    def delete_task(self, task_id):
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                return False
            self._completions = {
                key: c for key, c in self._completions.items() if key[1] != task_id
            }
            return True

    # Completions

    def insert_or_get_completion(self, user_id, task_id, reward=0):
        key = (user_id, task_id)
        with self._lock:
            existing = self._completions.get(key)
            if existing is not None and existing.completed:
                return existing, False

            balance = self._credited_balance(user_id, reward)
            completion = CompletionRecord(
                user_id=user_id,
                task_id=task_id,
                completed=True,
                completed_at=get_utc_time(),
            )
            self._completions[key] = completion
            self._points[user_id] = balance
            return completion, True

    def list_completions(self, user_id, task_ids=None):
        with self._lock:
            completions = [c for c in self._completions.values() if c.user_id == user_id]
        if task_ids is not None:
            wanted = set(task_ids)
            completions = [c for c in completions if c.task_id in wanted]
        return completions

    def completed_task_history(self, user_id, limit=10):
        completions = [c for c in self.list_completions(user_id) if c.completed]
        completions.sort(key=lambda c: c.completed_at, reverse=True)
        pairs = []
        for completion in completions:
            task = self.get_task(completion.task_id)
            if task is not None:
                pairs.append((task, completion))
        return pairs[:limit]
