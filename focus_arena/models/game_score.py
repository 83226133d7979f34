from datetime import datetime, timezone

from focus_arena import db


class GameScore(db.Model):
    """A single submitted result. Rows are written once and never updated."""

    __tablename__ = "game_scores"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    game_id = db.Column(db.String(50), nullable=False)
    raw_score = db.Column(db.Float, nullable=False)
    points_earned = db.Column(db.Integer, nullable=False, default=0)
    submitted_at = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    season_id = db.Column(
        db.Integer, db.ForeignKey("seasons.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        db.Index("idx_game_scores_user", "user_id"),
        db.Index("idx_game_scores_game", "game_id"),
        db.Index("idx_game_scores_season", "season_id"),
        db.Index("idx_game_scores_submitted", "submitted_at"),
    )

    def __repr__(self):
        return f"<GameScore user_id={self.user_id} game={self.game_id} score={self.raw_score}>"

    def to_dict(self):
        """Convert score to dictionary for API responses"""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "game_id": self.game_id,
            "score": self.raw_score,
            "points_earned": self.points_earned,
            "played_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "season_id": self.season_id,
        }
