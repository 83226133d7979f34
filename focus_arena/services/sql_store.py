"""
SQL score store

Backed by the Flask-SQLAlchemy session, so the same code serves the SQLite
file used in development and PostgreSQL in production. Datetimes are written
as naive UTC. Uniqueness constraints, not prior reads, decide whether a task
completion or a daily task set already exists. Balance credits are issued in
the same transaction as the score or completion they pay for.
"""

import functools
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from focus_arena.models import DailyTask, GameScore, Season, User, UserTask
from focus_arena.services.score_store import ScoreStore
from focus_arena.utils.exceptions import StorageUnavailable, UnknownUserError
from focus_arena.utils.timezone_utils import ensure_utc, get_utc_time

logger = logging.getLogger(__name__)


def _naive_utc(dt):
    if dt is None:
        return None
    return ensure_utc(dt).replace(tzinfo=None)


def storage_call(method):
    """Roll back and raise StorageUnavailable when the database cannot be reached"""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except (OperationalError, InterfaceError) as e:
            self.session.rollback()
            logger.error(f"Score store {method.__name__} failed: {e}")
            raise StorageUnavailable() from e

    return wrapper


class SqlScoreStore(ScoreStore):
    def __init__(self, session):
        self.session = session

    def _credit(self, user_id, amount):
        """Add amount to the balance inside the open transaction"""
        # Single UPDATE so concurrent credits add up instead of overwriting
        updated = (
            self.session.query(User)
            .filter(User.id == user_id)
            .update({User.points: User.points + amount}, synchronize_session=False)
        )
        if not updated:
            self.session.rollback()
            logger.warning(f"Tried to credit {amount} points to missing user {user_id}")
            raise UnknownUserError(user_id)

    # Scores

    @storage_call
    def insert_score(self, new_score):
        self._credit(new_score.user_id, new_score.points_earned)
        record = GameScore(
            user_id=new_score.user_id,
            game_id=new_score.game_id,
            raw_score=new_score.raw_score,
            points_earned=new_score.points_earned,
            submitted_at=_naive_utc(new_score.submitted_at),
            season_id=new_score.season_id,
        )
        self.session.add(record)
        self.session.commit()
        return record

    @storage_call
    def query_scores(self, game_id=None, season_id=None, user_id=None, since=None, until=None):
        query = self.session.query(GameScore)

        if game_id is not None:
            query = query.filter(GameScore.game_id == game_id)
        if season_id is not None:
            query = query.filter(GameScore.season_id == season_id)
        if user_id is not None:
            query = query.filter(GameScore.user_id == user_id)
        if since is not None:
            query = query.filter(GameScore.submitted_at >= _naive_utc(since))
        if until is not None:
            query = query.filter(GameScore.submitted_at < _naive_utc(until))

        return query.order_by(GameScore.id).all()

    @storage_call
    def user_history(self, user_id, game_id=None, limit=10):
        query = self.session.query(GameScore).filter(GameScore.user_id == user_id)
        if game_id is not None:
            query = query.filter(GameScore.game_id == game_id)
        return (
            query.order_by(GameScore.submitted_at.desc(), GameScore.id.desc())
            .limit(limit)
            .all()
        )

    @storage_call
    def recent_scores(self, limit=100, game_id=None, user_id=None):
        query = self.session.query(GameScore)
        if game_id is not None:
            query = query.filter(GameScore.game_id == game_id)
        if user_id is not None:
            query = query.filter(GameScore.user_id == user_id)
        return (
            query.order_by(GameScore.submitted_at.desc(), GameScore.id.desc())
            .limit(limit)
            .all()
        )

    @storage_call
    def delete_score(self, score_id):
        deleted = (
            self.session.query(GameScore)
            .filter(GameScore.id == score_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return deleted == 1

    # Points balance

    @storage_call
    def get_points(self, user_id):
        points = self.session.query(User.points).filter(User.id == user_id).scalar()
        return points or 0

    @storage_call
    def set_points(self, user_id, points):
        updated = (
            self.session.query(User)
            .filter(User.id == user_id)
            .update({User.points: points}, synchronize_session=False)
        )
        if not updated:
            self.session.rollback()
            raise UnknownUserError(user_id)
        self.session.commit()
        return points

    @storage_call
    def total_points(self):
        return self.session.query(func.coalesce(func.sum(User.points), 0)).scalar()

    # Users

    @storage_call
    def delete_user_records(self, user_id):
        self.session.query(UserTask).filter(UserTask.user_id == user_id).delete(
            synchronize_session=False
        )
        self.session.query(GameScore).filter(GameScore.user_id == user_id).delete(
            synchronize_session=False
        )
        self.session.query(User).filter(User.id == user_id).update(
            {User.points: 0}, synchronize_session=False
        )
        self.session.commit()

    # Seasons

    @storage_call
    def list_seasons(self):
        return (
            self.session.query(Season)
            .order_by(Season.created_at.desc(), Season.id.desc())
            .all()
        )

    @storage_call
    def get_season(self, season_id):
        return self.session.get(Season, season_id)

    @storage_call
    def create_season(self, name, start_date, end_date, description=None, is_active=True):
        season = Season(
            name=name,
            description=description,
            start_date=_naive_utc(start_date),
            end_date=_naive_utc(end_date),
            is_active=is_active,
            created_at=_naive_utc(get_utc_time()),
        )
        self.session.add(season)
        self.session.commit()
        return season

    @storage_call
    def update_season(self, season_id, patch):
        season = self.session.get(Season, season_id)
        if season is None:
            return None

        patch.apply_to(season)
        season.start_date = _naive_utc(season.start_date)
        season.end_date = _naive_utc(season.end_date)
        self.session.commit()
        return season

    @storage_call
    def delete_season(self, season_id):
        season = self.session.get(Season, season_id)
        if season is None:
            return False

        self.session.query(GameScore).filter(GameScore.season_id == season_id).update(
            {GameScore.season_id: None}, synchronize_session=False
        )
        self.session.delete(season)
        self.session.commit()
        return True

    # Daily tasks

    @storage_call
    def list_tasks_for_date(self, task_date):
        return (
            self.session.query(DailyTask)
            .filter(DailyTask.task_date == task_date)
            .order_by(DailyTask.slot)
            .all()
        )

    @storage_call
    def get_task(self, task_id):
        return self.session.get(DailyTask, task_id)

    @storage_call
    def insert_tasks_if_absent(self, task_date, templates):
        existing = self.list_tasks_for_date(task_date)
        if existing:
            return existing, False

        tasks = [
            DailyTask(
                task_date=task_date,
                slot=slot,
                game_id=template.game_id,
                target_threshold=template.target,
                points_reward=template.reward,
                description=template.description,
            )
            for slot, template in enumerate(templates)
        ]
        self.session.add_all(tasks)

        try:
            self.session.commit()
        except IntegrityError:
            # Another request created today's set first
            self.session.rollback()
            logger.info(f"Daily tasks for {task_date} were created concurrently")
            return self.list_tasks_for_date(task_date), False

        return tasks, True

    @storage_call
    def delete_task(self, task_id):
        task = self.session.get(DailyTask, task_id)
        if task is None:
            return False

        self.session.delete(task)
        self.session.commit()
        return True

    # Completions

    @storage_call
    def insert_or_get_completion(self, user_id, task_id, reward=0):
        existing = (
            self.session.query(UserTask)
            .filter_by(user_id=user_id, task_id=task_id)
            .first()
        )
        if existing is not None and existing.completed:
            return existing, False

        now = _naive_utc(get_utc_time())

        if existing is not None:
            # Row exists but was never completed: only the UPDATE that flips it wins
            flipped = (
                self.session.query(UserTask)
                .filter(UserTask.id == existing.id, UserTask.completed.is_(False))
                .update(
                    {UserTask.completed: True, UserTask.completed_at: now},
                    synchronize_session=False,
                )
            )
            if flipped:
                self._credit(user_id, reward)
            self.session.commit()
            self.session.refresh(existing)
            return existing, flipped == 1

        self._credit(user_id, reward)
        completion = UserTask(
            user_id=user_id, task_id=task_id, completed=True, completed_at=now
        )
        self.session.add(completion)
        try:
            self.session.commit()
        except IntegrityError:
            # Lost the race: the rollback also undoes this caller's credit
            self.session.rollback()
            winner = (
                self.session.query(UserTask)
                .filter_by(user_id=user_id, task_id=task_id)
                .one()
            )
            return winner, False

        return completion, True

    @storage_call
    def list_completions(self, user_id, task_ids=None):
        query = self.session.query(UserTask).filter(UserTask.user_id == user_id)
        if task_ids is not None:
            task_ids = list(task_ids)
            if not task_ids:
                return []
            query = query.filter(UserTask.task_id.in_(task_ids))
        return query.all()

    @storage_call
    def completed_task_history(self, user_id, limit=10):
        rows = (
            self.session.query(DailyTask, UserTask)
            .join(UserTask, UserTask.task_id == DailyTask.id)
            .filter(UserTask.user_id == user_id, UserTask.completed.is_(True))
            .order_by(UserTask.completed_at.desc(), UserTask.id.desc())
            .limit(limit)
            .all()
        )
        return [(task, completion) for task, completion in rows]
