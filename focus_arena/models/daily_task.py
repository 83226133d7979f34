from focus_arena import db


class DailyTask(db.Model):
    __tablename__ = "daily_tasks"

    id = db.Column(db.Integer, primary_key=True)
    task_date = db.Column(db.Date, nullable=False)
    # Position within the day's set; UNIQUE(task_date, slot) makes the
    # daily generation exactly-once
    slot = db.Column(db.Integer, nullable=False)
    game_id = db.Column(db.String(50), nullable=False)
    target_threshold = db.Column(db.Float, nullable=False)
    points_reward = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(200))

    completions = db.relationship(
        "UserTask", backref="task", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.UniqueConstraint("task_date", "slot", name="unique_daily_task_slot"),
        db.Index("idx_daily_tasks_date", "task_date"),
    )

    def __repr__(self):
        return f"<DailyTask {self.task_date} {self.game_id} target={self.target_threshold}>"

    def to_dict(self, completed=None):
        """Convert task to dictionary for API responses"""
        data = {
            "id": self.id,
            "task_date": self.task_date.isoformat() if self.task_date else None,
            "game_id": self.game_id,
            "target": self.target_threshold,
            "points_reward": self.points_reward,
            "description": self.description,
        }
        if completed is not None:
            data["completed"] = completed
        return data
