from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required

from focus_arena import limiter
from focus_arena.models import User
from focus_arena.routes.api import bp
from focus_arena.services import get_scoring_service
from focus_arena.utils.cache_utils import cached_json, invalidate_leaderboards
from focus_arena.utils.game_catalog import list_games
from focus_arena.utils.ranking import ALL_SEASONS

MAX_LIMIT = 100


def _limit_arg(config_key):
    default = current_app.config.get(config_key, 20)
    limit = request.args.get("limit", default, type=int)
    return max(1, min(limit, MAX_LIMIT))


def _with_usernames(entries):
    """Serialize leaderboard entries and attach usernames"""
    usernames = User.usernames_for({entry.user_id for entry in entries})
    rows = []
    for entry in entries:
        row = entry.to_dict()
        row["username"] = usernames.get(entry.user_id)
        rows.append(row)
    return rows


def _season_or_404(season_id):
    season = get_scoring_service().store.get_season(season_id)
    if season is None:
        abort(404)
    return season


def _score_submit_limit():
    return current_app.config.get("SCORE_SUBMIT_RATE_LIMIT", "30 per minute")


# Account


@bp.route("/me")
@login_required
def me():
    """Get the current user with their point balance"""
    data = current_user.to_dict()
    data["points"] = get_scoring_service().store.get_points(current_user.id)
    return jsonify({"user": data})


# Games and scores


@bp.route("/games")
def games():
    """List the game catalog"""
    return jsonify({"games": [game.to_dict() for game in list_games()]})


@bp.route("/games/score", methods=["POST"])
@login_required
@limiter.limit(_score_submit_limit)
def submit_score():
    """Submit a game result"""
    data = request.get_json(silent=True) or {}
    game_id = data.get("game_id", data.get("gameType"))
    raw_score = data.get("score")

    missing = [
        name
        for name, value in (("game_id", game_id), ("score", raw_score))
        if value is None
    ]
    if missing:
        return jsonify({"error": "Missing required fields", "missing": missing}), 400

    result = get_scoring_service().submit_score(current_user.id, game_id, raw_score)
    invalidate_leaderboards()

    payload = result.to_dict()
    payload["message"] = "Score saved"
    return jsonify(payload), 201


@bp.route("/games/scores/<game_id>")
@login_required
def score_history(game_id):
    """Get the current user's recent results for a game"""
    limit = _limit_arg("HISTORY_LIMIT")
    history = get_scoring_service().user_history(current_user.id, game_id, limit=limit)
    return jsonify({"history": [record.to_dict() for record in history]})


# Leaderboards


@bp.route("/leaderboard/total")
@cached_json(timeout=60, key_prefix="leaderboard_total")
def total_leaderboard():
    """All-time points leaderboard"""
    entries = get_scoring_service().build_total_leaderboard(
        limit=_limit_arg("TOTAL_LEADERBOARD_LIMIT")
    )
    return {"leaderboard": _with_usernames(entries)}


@bp.route("/leaderboard/today")
@cached_json(timeout=60, key_prefix="leaderboard_today")
def today_leaderboard():
    """Points earned today leaderboard"""
    entries = get_scoring_service().build_today_leaderboard(
        limit=_limit_arg("LEADERBOARD_LIMIT")
    )
    return {"leaderboard": _with_usernames(entries)}


@bp.route("/leaderboard/<game_id>")
@bp.route("/games/leaderboard/<game_id>")
@cached_json(timeout=60, key_prefix="leaderboard_game")
def game_leaderboard(game_id):
    """Best score per user for one game"""
    season_id = request.args.get("season_id", type=int)
    scope = season_id if season_id is not None else ALL_SEASONS
    entries = get_scoring_service().build_leaderboard(
        game_id, scope=scope, limit=_limit_arg("LEADERBOARD_LIMIT")
    )
    return {"game_id": game_id, "season_id": season_id, "leaderboard": _with_usernames(entries)}


# Daily tasks


@bp.route("/tasks/today")
@login_required
def today_tasks():
    """Get today's tasks (generating them if needed) with completion status"""
    tasks = get_scoring_service().tasks_for_user(current_user.id)
    return jsonify({"tasks": [task.to_dict(completed=done) for task, done in tasks]})


@bp.route("/tasks/history")
@login_required
def task_history():
    """Get the current user's completed tasks"""
    limit = _limit_arg("HISTORY_LIMIT")
    history = get_scoring_service().task_history(current_user.id, limit=limit)
    rows = []
    for task, completion in history:
        row = task.to_dict(completed=completion.completed)
        row["completed_at"] = (
            completion.completed_at.isoformat() if completion.completed_at else None
        )
        rows.append(row)
    return jsonify({"history": rows})


@bp.route("/tasks/<int:task_id>/complete", methods=["POST"])
@login_required
def complete_task(task_id):
    """Mark one of today's tasks as completed"""
    service = get_scoring_service()
    task = service.store.get_task(task_id)
    if task is None or task.task_date != service.today():
        abort(404)

    result = service.complete_task(current_user.id, task_id)
    if result.already_completed:
        return jsonify({"error": "Task already completed", "already_completed": True}), 409

    return jsonify({"message": "Task completed", "points_reward": result.points_reward})


# Statistics


@bp.route("/stats/user")
@login_required
def user_stats():
    """Get statistics for the current user"""
    return jsonify({"stats": get_scoring_service().user_stats(current_user.id)})


# Seasons


@bp.route("/seasons")
@cached_json(timeout=300, key_prefix="seasons")
def seasons():
    """Get all seasons, newest first"""
    return {"seasons": [season.to_dict() for season in get_scoring_service().store.list_seasons()]}


@bp.route("/seasons/active")
@cached_json(timeout=60, key_prefix="season_active")
def active_season():
    """Get the season new scores are currently tagged with"""
    season = get_scoring_service().select_active_season()
    return {"season": season.to_dict() if season else None}


@bp.route("/seasons/<int:season_id>")
def season_detail(season_id):
    return jsonify({"season": _season_or_404(season_id).to_dict()})


@bp.route("/seasons/<int:season_id>/leaderboard/total")
@cached_json(timeout=60, key_prefix="season_leaderboard_total")
def season_total_leaderboard(season_id):
    """Points leaderboard within a season"""
    _season_or_404(season_id)
    entries = get_scoring_service().build_total_leaderboard(
        limit=_limit_arg("TOTAL_LEADERBOARD_LIMIT"), season_id=season_id
    )
    return {"season_id": season_id, "leaderboard": _with_usernames(entries)}


@bp.route("/seasons/<int:season_id>/leaderboard/<game_id>")
@cached_json(timeout=60, key_prefix="season_leaderboard_game")
def season_game_leaderboard(season_id, game_id):
    """Best score per user for one game within a season"""
    _season_or_404(season_id)
    entries = get_scoring_service().build_leaderboard(
        game_id, scope=season_id, limit=_limit_arg("LEADERBOARD_LIMIT")
    )
    return {"season_id": season_id, "game_id": game_id, "leaderboard": _with_usernames(entries)}


@bp.route("/seasons/<int:season_id>/stats")
def season_stats(season_id):
    _season_or_404(season_id)
    return jsonify({"stats": get_scoring_service().season_stats(season_id)})
