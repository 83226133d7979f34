from focus_arena import db  # noqa: F401 - imported for model imports

from .daily_task import DailyTask
from .game_score import GameScore
from .season import Season, SeasonPatch
from .user import User
from .user_task import UserTask

__all__ = [
    "User",
    "GameScore",
    "Season",
    "SeasonPatch",
    "DailyTask",
    "UserTask",
]
