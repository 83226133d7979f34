from flask import current_app

from focus_arena.services.score_store import create_score_store
from focus_arena.services.scoring_service import ScoringService


def init_scoring_service(app):
    """Create the app's ScoringService and register it as an extension"""
    service = ScoringService(
        create_score_store(app),
        timezone_name=app.config.get("TIMEZONE", "UTC"),
        daily_task_count=app.config.get("DAILY_TASK_COUNT", 3),
    )
    app.extensions["scoring_service"] = service
    return service


def get_scoring_service():
    """The ScoringService bound to the current app"""
    return current_app.extensions["scoring_service"]
