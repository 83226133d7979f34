"""
Focus Arena Daily Task Scheduler Service

Generates each day's task set at local midnight using APScheduler. The API
also generates lazily on the first read of the day, so a missed run only
delays generation until someone asks for today's tasks.
"""

import atexit
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from focus_arena.utils.cache_utils import invalidate_leaderboards

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages background jobs for daily task generation"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.job_stats = {
            "last_run": None,
            "total_runs": 0,
            "task_sets_created": 0,
            "failed_runs": 0,
            "last_error": None,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(
            daemon=True, timezone=app.config.get("TIMEZONE", "UTC")
        )

        # Register shutdown
        atexit.register(self.shutdown)

        # Start scheduler if enabled
        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            # Clear any existing jobs
            self.scheduler.remove_all_jobs()

            self._add_core_jobs()

            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        """Add core scheduled jobs"""

        # Daily task generation just after local midnight
        self.scheduler.add_job(
            func=self.generate_daily_tasks,
            trigger=CronTrigger(hour=0, minute=0, second=5),
            id="generate_daily_tasks",
            name="Generate Daily Tasks",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        # The today leaderboard starts empty at the day boundary
        self.scheduler.add_job(
            func=self._reset_daily_caches,
            trigger=CronTrigger(hour=0, minute=0, second=0),
            id="reset_daily_caches",
            name="Reset Daily Leaderboard Cache",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def generate_daily_tasks(self):
        """Create today's task set unless it already exists"""
        from focus_arena.services import get_scoring_service

        with self.app.app_context():
            self.job_stats["total_runs"] += 1
            try:
                tasks, created = get_scoring_service().ensure_daily_tasks()
                if created:
                    self.job_stats["task_sets_created"] += 1
                    logger.info(f"Scheduled run created {len(tasks)} daily tasks")
                else:
                    logger.info("Scheduled run found today's tasks already present")
                self.job_stats["last_run"] = tasks[0].task_date.isoformat() if tasks else None
                return tasks, created

            except Exception as e:
                self.job_stats["failed_runs"] += 1
                self.job_stats["last_error"] = str(e)
                logger.error(f"Error generating daily tasks: {e}", exc_info=True)
                return [], False

    def _reset_daily_caches(self):
        with self.app.app_context():
            invalidate_leaderboards()

    def get_status(self):
        """Get scheduler status and job information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": (
                            job.next_run_time.isoformat() if job.next_run_time else None
                        ),
                    }
                )

        return {
            "is_running": self.is_running,
            "jobs": jobs,
            "stats": self.job_stats,
        }


# Global scheduler instance
scheduler_service = SchedulerService()
