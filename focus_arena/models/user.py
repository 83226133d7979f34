from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import generate_password_hash

from focus_arena import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(20), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Point balance: score points plus task rewards
    points = db.Column(db.Integer, nullable=False, default=0)

    # Account status
    is_active = db.Column(db.Boolean, default=True)
    is_admin = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    scores = db.relationship(
        "GameScore", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )
    task_completions = db.relationship(
        "UserTask", backref="user", lazy="dynamic", cascade="all, delete-orphan"
    )

    __table_args__ = (
        db.Index("idx_user_points", "points"),
        db.Index("idx_user_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<User {self.username}>"

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    @staticmethod
    def usernames_for(user_ids):
        """Map user id -> username for a batch of ids"""
        if not user_ids:
            return {}
        rows = (
            db.session.query(User.id, User.username)
            .filter(User.id.in_(list(user_ids)))
            .all()
        )
        return {row.id: row.username for row in rows}

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            "id": self.id,
            "username": self.username,
            "points": self.points,
            "is_admin": bool(self.is_admin),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
