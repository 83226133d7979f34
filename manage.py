#!/usr/bin/env python3
"""
Focus Arena Management CLI

This script provides command-line management functionality for the Focus Arena application.
"""

import logging
import os
from datetime import datetime, time

import click
from flask.cli import with_appcontext
from flask_migrate import downgrade, migrate, upgrade
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from focus_arena import create_app, db
from focus_arena.models import SeasonPatch, User
from focus_arena.services import get_scoring_service
from focus_arena.services.scheduler_service import scheduler_service
from focus_arena.utils.cache_utils import CacheManager, invalidate_leaderboards, invalidate_seasons
from focus_arena.utils.exceptions import ScoringError
from focus_arena.utils.ranking import ALL_SEASONS
from focus_arena.utils.timezone_utils import ensure_utc

app = create_app()


@click.group()
def cli():
    """Focus Arena Management CLI"""
    pass


# Season Management Commands
@cli.group()
def season():
    """Season management commands"""
    pass


@season.command()
@click.argument("name")
@click.option(
    "--start-date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    required=True,
    help="Season start date (YYYY-MM-DD)",
)
@click.option(
    "--end-date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    required=True,
    help="Season end date (YYYY-MM-DD), inclusive",
)
@click.option("--description", help="Season description")
@click.option("--inactive", is_flag=True, help="Create the season deactivated")
@with_appcontext
def create(name, start_date, end_date, description, inactive):
    """Create a new season"""
    start = ensure_utc(datetime.combine(start_date.date(), time.min))
    end = ensure_utc(datetime.combine(end_date.date(), time.max))
    if end < start:
        click.echo("❌ End date must not be before start date!")
        return

    try:
        created = get_scoring_service().store.create_season(
            name=name,
            start_date=start,
            end_date=end,
            description=description,
            is_active=not inactive,
        )
        invalidate_seasons()
        click.echo(
            f"✅ Created season '{created.name}' (id {created.id}) "
            f"{start.date()} to {end.date()}"
        )
    except ScoringError as e:
        click.echo(f"❌ Error creating season: {e.message}")
        logging.error(f"Season creation failed: {e.message}")


def _set_season_active(season_id, is_active):
    store = get_scoring_service().store
    try:
        updated = store.update_season(season_id, SeasonPatch(is_active=is_active))
    except ScoringError as e:
        click.echo(f"❌ Error updating season: {e.message}")
        logging.error(f"Season {season_id} update failed: {e.message}")
        return

    if updated is None:
        click.echo(f"❌ Season {season_id} not found!")
        return

    invalidate_seasons()
    invalidate_leaderboards()
    state = "Activated" if is_active else "Deactivated"
    click.echo(f"✅ {state} season '{updated.name}' (id {season_id})")


@season.command()
@click.argument("season_id", type=int)
@with_appcontext
def activate(season_id):
    """Activate a season"""
    _set_season_active(season_id, True)


@season.command()
@click.argument("season_id", type=int)
@with_appcontext
def deactivate(season_id):
    """Deactivate a season"""
    _set_season_active(season_id, False)


@season.command()
@with_appcontext
def list_seasons():
    """List all seasons"""
    service = get_scoring_service()
    seasons = service.store.list_seasons()

    if not seasons:
        click.echo("No seasons found.")
        return

    current = service.select_active_season()
    click.echo("Seasons:")
    for s in seasons:
        if current and s.id == current.id:
            status = "🟢 CURRENT"
        elif s.is_active:
            status = "🟡 Active"
        else:
            status = "⚪ Inactive"
        click.echo(
            f"  {s.id}: {s.name} {status} - "
            f"{s.start_date:%Y-%m-%d} to {s.end_date:%Y-%m-%d}"
        )


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


def _create_user(username, password, is_admin):
    if not 3 <= len(username) <= 20:
        click.echo("❌ Username must be between 3 and 20 characters!")
        return

    if User.query.filter_by(username=username).first():
        click.echo(f"❌ User '{username}' already exists!")
        return

    try:
        new_user = User(username=username, is_active=True, is_admin=is_admin)
        new_user.set_password(password)

        db.session.add(new_user)
        db.session.commit()

        kind = "admin user" if is_admin else "user"
        click.echo(f"✅ Created {kind} '{username}' (id {new_user.id})")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ User '{username}' already exists!")
        logging.error(f"User creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating user: {str(e)}")
        logging.error(f"User creation failed - SQL error: {e}")


@user.command(name="create")
@click.argument("username")
@click.argument("password")
@click.option("--admin", is_flag=True, help="Grant admin rights")
@with_appcontext
def create_user(username, password, admin):
    """Create a player account"""
    _create_user(username, password, admin)


@user.command()
@click.argument("username")
@click.argument("password")
@with_appcontext
def create_admin(username, password):
    """Create an admin user"""
    _create_user(username, password, True)


@user.command()
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()
    store = get_scoring_service().store

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.is_active else "🔴"
        role = "👑" if u.is_admin else "  "
        click.echo(f"  {status} {role} {u.id}: {u.username} - {store.get_points(u.id)} points")


# Daily Task Commands
@cli.group()
def tasks():
    """Daily task commands"""
    pass


@tasks.command()
@with_appcontext
def generate():
    """Generate today's tasks if they do not exist yet"""
    try:
        day_tasks, created = get_scoring_service().ensure_daily_tasks()
    except ScoringError as e:
        click.echo(f"❌ Error generating tasks: {e.message}")
        logging.error(f"Task generation failed: {e.message}")
        return

    if created:
        click.echo(f"✅ Generated {len(day_tasks)} tasks:")
    else:
        click.echo("ℹ️  Today's tasks already exist:")
    for task in day_tasks:
        click.echo(f"  {task.id}: {task.description} (+{task.points_reward} points)")


@tasks.command()
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Task date (YYYY-MM-DD), defaults to today",
)
@with_appcontext
def show(day):
    """Show the tasks for a day"""
    service = get_scoring_service()
    task_date = day.date() if day else service.today()
    day_tasks = service.store.list_tasks_for_date(task_date)

    if not day_tasks:
        click.echo(f"No tasks for {task_date}.")
        return

    click.echo(f"Tasks for {task_date}:")
    for task in day_tasks:
        click.echo(
            f"  {task.id}: [{task.game_id}] {task.description} "
            f"(target {task.target_threshold}, +{task.points_reward} points)"
        )


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command(name="show")
@click.argument("game_id")
@click.option("--season-id", type=int, help="Restrict to one season")
@click.option("--limit", default=20, show_default=True, help="Number of entries")
@with_appcontext
def show_leaderboard(game_id, season_id, limit):
    """Show the best-score leaderboard for a game"""
    scope = season_id if season_id is not None else ALL_SEASONS
    try:
        entries = get_scoring_service().build_leaderboard(game_id, scope=scope, limit=limit)
    except ScoringError as e:
        click.echo(f"❌ {e.message}")
        return

    if not entries:
        click.echo(f"No scores for {game_id} yet.")
        return

    usernames = User.usernames_for({entry.user_id for entry in entries})
    click.echo(f"🏆 {game_id} leaderboard:")
    for entry in entries:
        name = usernames.get(entry.user_id, f"user {entry.user_id}")
        click.echo(
            f"  {entry.rank:>3}. {name:<20} {entry.best_raw_score:g} "
            f"({entry.points_earned_at_best} points)"
        )


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command()
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@db_cmd.command()
@with_appcontext
def reset():
    """⚠️  DANGER: Drop and recreate all tables"""
    if not click.confirm("This will DELETE ALL DATA. Are you sure?"):
        click.echo("Cancelled.")
        return

    try:
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error resetting database: {str(e)}")


# Database Migration Commands
@cli.group()
def db_migrate():
    """Database migration commands"""
    pass


@db_migrate.command()
@with_appcontext
def init_migrations():
    """Initialize migrations repository"""
    if os.path.exists("migrations"):
        click.echo("❌ Migrations directory already exists!")
        return

    from flask_migrate import init as flask_migrate_init

    flask_migrate_init()
    click.echo("✅ Migrations repository initialized!")


@db_migrate.command()
@click.option("-m", "--message", required=True, help="Migration message")
@with_appcontext
def create_migration(message):
    """Create a new migration"""
    migrate(message=message)
    click.echo(f"✅ Migration created: {message}")


@db_migrate.command()
@click.option("--revision", default="head", help="Revision to upgrade to")
@with_appcontext
def apply_migrations(revision):
    """Apply migrations to database"""
    upgrade(revision=revision)
    click.echo(f"✅ Migrations applied to {revision}")


@db_migrate.command()
@click.option("--revision", required=True, help="Revision to downgrade to")
@with_appcontext
def rollback_migration(revision):
    """Rollback migrations to specific revision"""
    downgrade(revision=revision)
    click.echo(f"✅ Rolled back to {revision}")


# Info Commands
@cli.command()
@with_appcontext
def status():
    """Show application status"""
    service = get_scoring_service()
    click.echo("🎯 Focus Arena Application Status")
    click.echo("=" * 40)

    # Database connection
    try:
        db.session.execute(text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")

    click.echo(f"💾 Score store: {app.config.get('STORAGE_BACKEND', 'sql')}")

    cache_stats = CacheManager.get_cache_stats()
    click.echo(f"🗄️  Cache: {cache_stats['type']} (timeout {cache_stats['timeout']}s)")

    scheduler_state = "Running" if scheduler_service.is_running else "Stopped"
    click.echo(f"⏰ Scheduler: {scheduler_state}")

    # Current season
    current_season = service.select_active_season()
    if current_season:
        click.echo(f"✅ Current Season: {current_season.name} (id {current_season.id})")
    else:
        click.echo("⚠️  Current Season: None active")

    # User count
    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    # Today's tasks
    today = service.today()
    task_count = len(service.store.list_tasks_for_date(today))
    click.echo(f"📋 Tasks for {today}: {task_count}")


if __name__ == "__main__":
    with app.app_context():
        cli()
