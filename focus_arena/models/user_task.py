from datetime import datetime, timezone

from focus_arena import db


class UserTask(db.Model):
    """Completion of a daily task by a user. One row per (user, task)."""

    __tablename__ = "user_tasks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    task_id = db.Column(db.Integer, db.ForeignKey("daily_tasks.id"), nullable=False)
    completed = db.Column(db.Boolean, nullable=False, default=True)
    completed_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("user_id", "task_id", name="unique_user_task"),
        db.Index("idx_user_tasks_user", "user_id"),
    )

    def __repr__(self):
        return f"<UserTask user_id={self.user_id} task_id={self.task_id} completed={self.completed}>"
