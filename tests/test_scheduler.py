from focus_arena.services.scheduler_service import SchedulerService


def test_scheduled_generation_runs_once_per_day(flask_app):
    scheduler = SchedulerService(flask_app)
    assert not scheduler.is_running

    tasks, created = scheduler.generate_daily_tasks()
    again, created_again = scheduler.generate_daily_tasks()

    assert created and not created_again
    assert [t.id for t in again] == [t.id for t in tasks]
    assert scheduler.job_stats["total_runs"] == 2
    assert scheduler.job_stats["task_sets_created"] == 1
    assert scheduler.job_stats["failed_runs"] == 0


def test_status_lists_no_jobs_until_started(flask_app):
    status = SchedulerService(flask_app).get_status()
    assert status["is_running"] is False
    assert status["jobs"] == []
