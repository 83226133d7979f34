from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from focus_arena import db
from focus_arena.models import GameScore, SeasonPatch, UserTask
from focus_arena.services.sql_store import SqlScoreStore
from focus_arena.utils.exceptions import StorageUnavailable, UnknownUserError
from focus_arena.utils.task_rules import TaskTemplate

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 14)

TEMPLATES = [
    TaskTemplate("snake", 100, 60, "Snake rookie"),
    TaskTemplate("breakout", 1000, 100, "Breakout regular"),
]


def test_app_uses_sql_store(sql_service):
    assert isinstance(sql_service.store, SqlScoreStore)


def test_submit_score_round_trip(sql_service, users):
    alice = users["alice"]
    result = sql_service.submit_score(alice, "snake", 320, now=NOW)

    row = db.session.get(GameScore, result.record.id)
    assert row.points_earned == 80
    assert row.submitted_at == NOW.replace(tzinfo=None)
    assert sql_service.store.get_points(alice) == 80


def test_score_for_missing_user_is_rejected(sql_service):
    with pytest.raises(UnknownUserError) as excinfo:
        sql_service.submit_score(9999, "snake", 320, now=NOW)

    assert excinfo.value.status_code == 404
    assert sql_service.store.query_scores() == []


def test_completion_for_missing_user_is_rejected(sql_service):
    store = sql_service.store
    (task, _), _ = store.insert_tasks_if_absent(TODAY, TEMPLATES)

    with pytest.raises(UnknownUserError):
        store.insert_or_get_completion(9999, task.id, reward=60)
    assert UserTask.query.count() == 0


def test_set_points_and_total(sql_service, users):
    store = sql_service.store
    sql_service.submit_score(users["alice"], "snake", 320, now=NOW)
    store.set_points(users["bob"], 100)

    assert store.get_points(users["bob"]) == 100
    assert store.total_points() == 180
    with pytest.raises(UnknownUserError):
        store.set_points(9999, 10)


def test_query_scores_filters_and_half_open_range(sql_service, users):
    alice, bob = users["alice"], users["bob"]
    sql_service.submit_score(alice, "snake", 100, now=NOW)
    sql_service.submit_score(bob, "snake", 200, now=NOW + timedelta(hours=1))
    sql_service.submit_score(bob, "breakout", 900, now=NOW + timedelta(hours=2))

    store = sql_service.store
    assert len(store.query_scores(game_id="snake")) == 2
    assert len(store.query_scores(user_id=bob)) == 2
    in_range = store.query_scores(since=NOW, until=NOW + timedelta(hours=2))
    assert [r.user_id for r in in_range] == [alice, bob]


def test_daily_tasks_insert_once(sql_service):
    store = sql_service.store
    tasks, created = store.insert_tasks_if_absent(TODAY, TEMPLATES)
    again, created_again = store.insert_tasks_if_absent(TODAY, TEMPLATES[::-1])

    assert created and not created_again
    assert [t.id for t in again] == [t.id for t in tasks]
    assert [t.game_id for t in again] == ["snake", "breakout"]


def test_daily_tasks_lost_race_returns_winner(sql_service, monkeypatch):
    store = sql_service.store
    winners, _ = store.insert_tasks_if_absent(TODAY, TEMPLATES)
    winner_ids = [t.id for t in winners]

    # Simulate a request that checked before the winner committed
    original = store.list_tasks_for_date
    calls = []

    def stale_then_fresh(task_date):
        calls.append(task_date)
        return [] if len(calls) == 1 else original(task_date)

    monkeypatch.setattr(store, "list_tasks_for_date", stale_then_fresh)
    tasks, created = store.insert_tasks_if_absent(TODAY, TEMPLATES[::-1])

    assert not created
    assert [t.id for t in tasks] == winner_ids


def test_completion_is_flipped_once(sql_service, users):
    store = sql_service.store
    (task, _), _ = store.insert_tasks_if_absent(TODAY, TEMPLATES)
    alice = users["alice"]

    completion, created = store.insert_or_get_completion(alice, task.id)
    assert created and completion.completed
    _, created_again = store.insert_or_get_completion(alice, task.id)
    assert not created_again
    assert UserTask.query.filter_by(user_id=alice, task_id=task.id).count() == 1


def test_uncompleted_row_can_be_completed(sql_service, users):
    store = sql_service.store
    (task, _), _ = store.insert_tasks_if_absent(TODAY, TEMPLATES)
    bob = users["bob"]
    db.session.add(UserTask(user_id=bob, task_id=task.id, completed=False))
    db.session.commit()

    _, created = store.insert_or_get_completion(bob, task.id)
    _, created_again = store.insert_or_get_completion(bob, task.id)
    assert created and not created_again


def test_service_grants_task_reward_once(sql_service, users):
    sql_service.store.insert_tasks_if_absent(TODAY, TEMPLATES)
    alice = users["alice"]

    first = sql_service.submit_score(alice, "breakout", 1200, now=NOW)
    second = sql_service.submit_score(alice, "breakout", 1300, now=NOW)
    assert first.task_reward == 100
    assert second.task_reward == 0
    assert sql_service.store.get_points(alice) == 60 + 100 + 60

    (pair,) = sql_service.task_history(alice)
    assert pair[0].game_id == "breakout"


def test_season_update_and_delete(sql_service, users):
    store = sql_service.store
    season = store.create_season("Spring", NOW - timedelta(days=1), NOW + timedelta(days=1))
    result = sql_service.submit_score(users["alice"], "snake", 150, now=NOW)
    assert result.season_id == season.id

    updated = store.update_season(season.id, SeasonPatch(name="Spring Cup", is_active=False))
    assert updated.name == "Spring Cup"
    assert sql_service.select_active_season(NOW) is None
    assert store.update_season(999, SeasonPatch(name="x")) is None

    assert store.delete_season(season.id)
    assert store.get_season(season.id) is None
    (row,) = store.query_scores(user_id=users["alice"])
    db.session.refresh(row)
    assert row.season_id is None


def test_delete_task_removes_completions(sql_service, users):
    store = sql_service.store
    (task, _), _ = store.insert_tasks_if_absent(TODAY, TEMPLATES)
    store.insert_or_get_completion(users["alice"], task.id)

    assert store.delete_task(task.id)
    assert not store.delete_task(task.id)
    assert store.list_completions(users["alice"]) == []


def test_database_outage_raises_storage_unavailable(sql_service, users, monkeypatch):
    def refuse_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session(), "commit", refuse_commit)

    with pytest.raises(StorageUnavailable):
        sql_service.submit_score(users["alice"], "snake", 500, now=NOW)

    monkeypatch.undo()
    assert sql_service.store.query_scores(user_id=users["alice"]) == []
    assert sql_service.store.get_points(users["alice"]) == 0


def test_failed_completion_commit_leaves_no_credit(sql_service, users, monkeypatch):
    store = sql_service.store
    (task, _), _ = store.insert_tasks_if_absent(TODAY, TEMPLATES)
    alice = users["alice"]

    def refuse_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session(), "commit", refuse_commit)
    with pytest.raises(StorageUnavailable):
        sql_service.complete_task(alice, task.id)

    monkeypatch.undo()
    assert store.list_completions(alice) == []
    assert store.get_points(alice) == 0

    retry = sql_service.complete_task(alice, task.id)
    assert retry.granted
    assert not sql_service.complete_task(alice, task.id).granted
    assert store.get_points(alice) == 60


def test_score_moderation_and_user_records(sql_service, users):
    store = sql_service.store
    alice, bob = users["alice"], users["bob"]
    (task, _), _ = store.insert_tasks_if_absent(TODAY, TEMPLATES)
    first = sql_service.submit_score(alice, "snake", 320, now=NOW)
    second = sql_service.submit_score(bob, "snake", 320, now=NOW + timedelta(minutes=1))

    assert [r.id for r in store.recent_scores()] == [second.record.id, first.record.id]
    assert [r.id for r in store.recent_scores(user_id=alice)] == [first.record.id]

    assert store.delete_score(second.record.id)
    assert not store.delete_score(second.record.id)
    assert store.get_points(bob) == 80 + 60

    store.delete_user_records(alice)
    assert store.query_scores(user_id=alice) == []
    assert store.list_completions(alice) == []
    assert store.get_points(alice) == 0
    assert store.list_tasks_for_date(TODAY)[0].id == task.id
