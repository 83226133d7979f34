"""
Daily task rules for Focus Arena

Template pool for the daily challenges and the eligibility check that decides
which of today's tasks a fresh submission satisfies. Targets use the same
comparison direction as the point tiers, but inclusive: a reaction task with
target 0.250 is met by exactly 0.250.
"""

import random
from dataclasses import dataclass

from focus_arena.utils.game_catalog import resolve_game


@dataclass(frozen=True)
class TaskTemplate:
    game_id: str
    target: float
    reward: int
    description: str


TASK_TEMPLATES = (
    TaskTemplate("f1_reaction", 0.250, 80, "F1 quick reflexes: reaction time < 0.250s"),
    TaskTemplate("f1_reaction", 0.220, 120, "F1 pro driver: reaction time < 0.220s"),
    TaskTemplate("schulte_grid_3", 18, 80, "Schulte 3x3: finish in under 18 seconds"),
    TaskTemplate("schulte_grid_4", 24, 100, "Schulte 4x4: finish in under 24 seconds"),
    TaskTemplate("schulte_grid_5", 30, 120, "Schulte 5x5: finish in under 30 seconds"),
    TaskTemplate("snake", 100, 60, "Snake rookie: score at least 100"),
    TaskTemplate("snake", 200, 80, "Snake regular: score at least 200"),
    TaskTemplate("snake", 300, 120, "Snake master: score at least 300"),
    TaskTemplate("breakout", 500, 60, "Breakout rookie: score at least 500"),
    TaskTemplate("breakout", 1000, 100, "Breakout regular: score at least 1000"),
    TaskTemplate("breakout", 1500, 150, "Breakout master: score at least 1500"),
)


def meets_target(game_id, raw_score, target):
    """Check a raw score against a task target in the game's direction"""
    game = resolve_game(game_id)
    if game.lower_is_better:
        return target >= raw_score
    return raw_score >= target


def choose_templates(count=3, rng=None):
    """Pick `count` distinct templates at random, without replacement"""
    rng = rng or random.Random()
    count = min(count, len(TASK_TEMPLATES))
    return rng.sample(TASK_TEMPLATES, count)


def completed_task_ids(user_id, completions):
    return {
        c.task_id for c in completions if c.user_id == user_id and c.completed
    }


def find_satisfiable_tasks(user_id, game_id, raw_score, today_tasks, completions, today):
    """
    Find tasks that a submission newly satisfies.

    Args:
        user_id: Submitting user
        game_id: Game the score was set in
        raw_score: The submitted measurement
        today_tasks: Candidate DailyTask-like objects
        completions: The user's existing TaskCompletion-like objects
        today: Calendar date the submission counts for

    Returns:
        list of tasks for this game, dated today, whose target is met and
        which the user has not completed yet
    """
    resolve_game(game_id)
    done = completed_task_ids(user_id, completions)

    return [
        task
        for task in today_tasks
        if task.game_id == game_id
        and task.task_date == today
        and task.id not in done
        and meets_target(game_id, raw_score, task.target_threshold)
    ]
