import random
from datetime import date, datetime, timezone

from focus_arena.services.score_store import CompletionRecord, TaskRecord
from focus_arena.utils.task_rules import (
    TASK_TEMPLATES,
    choose_templates,
    find_satisfiable_tasks,
    meets_target,
)

TODAY = date(2026, 3, 14)


def task(task_id, game_id, target, task_date=TODAY, reward=100):
    return TaskRecord(
        id=task_id,
        task_date=task_date,
        slot=task_id,
        game_id=game_id,
        target_threshold=target,
        points_reward=reward,
    )


def done(user_id, task_id, completed=True):
    return CompletionRecord(
        user_id=user_id,
        task_id=task_id,
        completed=completed,
        completed_at=datetime(2026, 3, 14, tzinfo=timezone.utc),
    )


def test_breakout_score_satisfies_task_once():
    tasks = [task(1, "breakout", 1000)]
    assert find_satisfiable_tasks(1, "breakout", 1200, tasks, [], TODAY) == tasks
    assert find_satisfiable_tasks(1, "breakout", 1200, tasks, [done(1, 1)], TODAY) == []


def test_targets_are_inclusive_in_game_direction():
    assert meets_target("f1_reaction", 0.250, 0.250)
    assert not meets_target("f1_reaction", 0.251, 0.250)
    assert meets_target("snake", 200, 200)
    assert not meets_target("snake", 199, 200)


def test_only_matching_game_and_date_qualify():
    tasks = [
        task(1, "snake", 100),
        task(2, "breakout", 500),
        task(3, "snake", 100, task_date=date(2026, 3, 13)),
        task(4, "snake", 300),
    ]
    result = find_satisfiable_tasks(1, "snake", 250, tasks, [], TODAY)
    assert [t.id for t in result] == [1]


def test_other_users_completions_do_not_count():
    tasks = [task(1, "snake", 100)]
    result = find_satisfiable_tasks(2, "snake", 150, tasks, [done(1, 1)], TODAY)
    assert [t.id for t in result] == [1]


def test_uncompleted_row_still_satisfiable():
    tasks = [task(1, "snake", 100)]
    result = find_satisfiable_tasks(1, "snake", 150, tasks, [done(1, 1, completed=False)], TODAY)
    assert [t.id for t in result] == [1]


def test_choose_templates_distinct_and_seeded():
    first = choose_templates(3, rng=random.Random(42))
    second = choose_templates(3, rng=random.Random(42))
    assert first == second
    assert len(set(first)) == 3
    assert all(t in TASK_TEMPLATES for t in first)


def test_choose_templates_caps_at_pool_size():
    assert len(choose_templates(100, rng=random.Random(1))) == len(TASK_TEMPLATES)
