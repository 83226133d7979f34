from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Optional

from focus_arena import db


@dataclass
class SeasonPatch:
    """Partial season update. Fields left as None are not touched."""

    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    def changes(self):
        """Return the fields that are set, as a dict"""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self):
        return not self.changes()

    def apply_to(self, season):
        for name, value in self.changes().items():
            setattr(season, name, value)
        return season


class Season(db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    # Season window, stored as UTC
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    # Status
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Timestamps
    created_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    scores = db.relationship("GameScore", backref="season", lazy="dynamic", passive_deletes=True)

    __table_args__ = (
        db.Index("idx_season_active", "is_active"),
        db.Index("idx_season_dates", "start_date", "end_date"),
    )

    def __repr__(self):
        return f"<Season {self.name}>"

    def to_dict(self):
        """Convert season to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
