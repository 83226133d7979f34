import logging
from functools import wraps

from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from focus_arena import db
from focus_arena.models import SeasonPatch, User
from focus_arena.routes.admin import bp
from focus_arena.services import get_scoring_service
from focus_arena.utils.cache_utils import CacheManager, invalidate_leaderboards, invalidate_seasons
from focus_arena.utils.game_catalog import resolve_game
from focus_arena.utils.timezone_utils import ensure_utc, parse_datetime

logger = logging.getLogger(__name__)

MAX_SCORES = 500


def admin_required(f):
    """Require a logged-in site admin"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            abort(403)
        return f(*args, **kwargs)

    return decorated_function


def _season_patch_from(data):
    """Build a SeasonPatch from a JSON body, raising ValueError on bad input"""
    patch = SeasonPatch(
        name=data.get("name") or None,
        description=data.get("description"),
        is_active=data.get("is_active"),
    )
    if data.get("start_date"):
        patch.start_date = parse_datetime(data["start_date"])
    if data.get("end_date"):
        patch.end_date = parse_datetime(data["end_date"], end_of_day=True)
    if patch.is_active is not None and not isinstance(patch.is_active, bool):
        raise ValueError("is_active must be true or false")
    if patch.start_date and patch.end_date and patch.end_date < patch.start_date:
        raise ValueError("end_date must not be before start_date")
    return patch


def _user_changes_from(data):
    """Validate an account update body, raising ValueError on bad input"""
    changes = {}
    if "username" in data:
        username = data["username"]
        if not isinstance(username, str) or not 3 <= len(username.strip()) <= 20:
            raise ValueError("username must be between 3 and 20 characters")
        changes["username"] = username.strip()
    if "points" in data:
        points = data["points"]
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValueError("points must be a non-negative integer")
        changes["points"] = points
    for flag in ("is_admin", "is_active"):
        if flag in data:
            if not isinstance(data[flag], bool):
                raise ValueError(f"{flag} must be true or false")
            changes[flag] = data[flag]
    if data.get("password"):
        if not isinstance(data["password"], str):
            raise ValueError("password must be a string")
        changes["password"] = data["password"]
    return changes


def _user_payload(user):
    data = user.to_dict()
    data["points"] = get_scoring_service().store.get_points(user.id)
    data["is_active"] = bool(user.is_active)
    return data


# Seasons


@bp.route("/seasons", methods=["POST"])
@admin_required
def create_season():
    data = request.get_json(silent=True) or {}
    missing = [name for name in ("name", "start_date", "end_date") if not data.get(name)]
    if missing:
        return jsonify({"error": "Missing required fields", "missing": missing}), 400

    try:
        patch = _season_patch_from(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    season = get_scoring_service().store.create_season(
        name=patch.name,
        start_date=patch.start_date,
        end_date=patch.end_date,
        description=patch.description,
        is_active=True if patch.is_active is None else patch.is_active,
    )
    invalidate_seasons()
    logger.info(f"Admin {current_user.id} created season {season.id} ({season.name})")
    return jsonify({"message": "Season created", "season": season.to_dict()}), 201


@bp.route("/seasons/<int:season_id>", methods=["PUT", "PATCH"])
@admin_required
def update_season(season_id):
    data = request.get_json(silent=True) or {}
    try:
        patch = _season_patch_from(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    if patch.is_empty():
        return jsonify({"error": "No fields to update"}), 400

    store = get_scoring_service().store
    existing = store.get_season(season_id)
    if existing is None:
        abort(404)

    start = patch.start_date or existing.start_date
    end = patch.end_date or existing.end_date
    if ensure_utc(end) < ensure_utc(start):
        return jsonify({"error": "end_date must not be before start_date"}), 400

    season = store.update_season(season_id, patch)
    invalidate_seasons()
    logger.info(
        f"Admin {current_user.id} updated season {season_id}: {sorted(patch.changes())}"
    )
    return jsonify({"message": "Season updated", "season": season.to_dict()})


@bp.route("/seasons/<int:season_id>", methods=["DELETE"])
@admin_required
def delete_season(season_id):
    if not get_scoring_service().store.delete_season(season_id):
        abort(404)

    invalidate_seasons()
    logger.info(f"Admin {current_user.id} deleted season {season_id}")
    return jsonify({"message": "Season deleted"})


# Daily tasks


@bp.route("/tasks")
@admin_required
def list_tasks():
    service = get_scoring_service()
    day_arg = request.args.get("date")
    try:
        day = parse_datetime(day_arg).date() if day_arg else service.today()
    except ValueError:
        return jsonify({"error": f"Invalid date: {day_arg}"}), 400

    tasks = service.store.list_tasks_for_date(day)
    return jsonify({"date": day.isoformat(), "tasks": [task.to_dict() for task in tasks]})


@bp.route("/tasks/generate", methods=["POST"])
@admin_required
def generate_tasks():
    tasks, created = get_scoring_service().ensure_daily_tasks()
    status = 201 if created else 200
    return jsonify({"created": created, "tasks": [task.to_dict() for task in tasks]}), status


@bp.route("/tasks/<int:task_id>", methods=["DELETE"])
@admin_required
def delete_task(task_id):
    if not get_scoring_service().store.delete_task(task_id):
        abort(404)

    logger.info(f"Admin {current_user.id} deleted task {task_id}")
    return jsonify({"message": "Task deleted"})


# Scores


@bp.route("/scores")
@admin_required
def list_scores():
    """Most recent submissions across all players"""
    game_id = request.args.get("game_id") or None
    if game_id is not None:
        resolve_game(game_id)
    limit = max(1, min(request.args.get("limit", 100, type=int), MAX_SCORES))

    records = get_scoring_service().store.recent_scores(
        limit=limit, game_id=game_id, user_id=request.args.get("user_id", type=int)
    )
    usernames = User.usernames_for({r.user_id for r in records})
    scores = []
    for record in records:
        row = record.to_dict()
        row["username"] = usernames.get(record.user_id)
        scores.append(row)
    return jsonify({"scores": scores})


@bp.route("/scores/<int:score_id>", methods=["DELETE"])
@admin_required
def delete_score(score_id):
    if not get_scoring_service().store.delete_score(score_id):
        abort(404)

    invalidate_leaderboards()
    logger.info(f"Admin {current_user.id} deleted score {score_id}")
    return jsonify({"message": "Score deleted"})


# Users


@bp.route("/users")
@admin_required
def list_users():
    users = [_user_payload(user) for user in User.query.all()]
    users.sort(key=lambda u: (-u["points"], u["id"]))
    return jsonify({"users": users})


@bp.route("/users/<int:user_id>")
@admin_required
def user_detail(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        abort(404)

    service = get_scoring_service()
    history = service.user_history(user_id, limit=50)
    return jsonify(
        {
            "user": _user_payload(user),
            "stats": service.user_stats(user_id),
            "history": [record.to_dict() for record in history],
        }
    )


@bp.route("/users/<int:user_id>", methods=["PUT", "PATCH"])
@admin_required
def update_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        abort(404)

    try:
        changes = _user_changes_from(request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if not changes:
        return jsonify({"error": "No fields to update"}), 400

    fields = sorted(changes)
    points = changes.pop("points", None)
    password = changes.pop("password", None)
    for key, value in changes.items():
        setattr(user, key, value)
    if password:
        user.set_password(password)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "Username already taken"}), 409

    if points is not None:
        get_scoring_service().store.set_points(user_id, points)

    invalidate_leaderboards()
    logger.info(f"Admin {current_user.id} updated user {user_id}: {fields}")
    return jsonify({"message": "User updated", "user": _user_payload(user)})


@bp.route("/users/<int:user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id):
    if user_id == current_user.id:
        return jsonify({"error": "Cannot delete your own account"}), 400

    user = db.session.get(User, user_id)
    if user is None:
        abort(404)

    get_scoring_service().store.delete_user_records(user_id)
    db.session.delete(user)
    db.session.commit()

    invalidate_leaderboards()
    logger.info(f"Admin {current_user.id} deleted user {user_id}")
    return jsonify({"message": "User deleted"})


# Statistics


@bp.route("/stats")
@admin_required
def platform_stats():
    """Users, scores, points awarded and today's active players"""
    stats = get_scoring_service().platform_stats(total_users=User.query.count())
    return jsonify({"stats": stats})


# Status


@bp.route("/status")
@admin_required
def status():
    """Scheduler, cache and storage status"""
    from focus_arena.services.scheduler_service import scheduler_service

    return jsonify(
        {
            "storage_backend": current_app.config.get("STORAGE_BACKEND", "sql"),
            "scheduler": scheduler_service.get_status(),
            "cache": CacheManager.get_cache_stats(),
        }
    )
