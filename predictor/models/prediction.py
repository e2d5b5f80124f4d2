from datetime import datetime, timezone

from predictor import db
from predictor.utils.scoring import describe_points


class Prediction(db.Model):
    __tablename__ = "predictions"

    id = db.Column(db.Integer, primary_key=True)

    # Prediction identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    match_id = db.Column(db.Integer, db.ForeignKey("matches.id"), nullable=False)

    # Predicted score
    home_goals = db.Column(db.Integer, nullable=False)
    away_goals = db.Column(db.Integer, nullable=False)

    # Result (written only by the recalculation sweep)
    points = db.Column(db.Integer, nullable=False, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint("user_id", "match_id", name="unique_user_match_prediction"),
        db.Index("idx_prediction_user", "user_id"),
        db.Index("idx_prediction_match", "match_id"),
        db.CheckConstraint("home_goals >= 0", name="home_goals_non_negative"),
        db.CheckConstraint("away_goals >= 0", name="away_goals_non_negative"),
    )

    def __repr__(self):
        return (
            f"<Prediction user_id={self.user_id} match_id={self.match_id} "
            f"{self.home_goals}-{self.away_goals} points={self.points}>"
        )

    def to_dict(self, include_user=False, include_match=True):
        """Convert prediction to dictionary for API responses"""
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "match_id": self.match_id,
            "home_goals": self.home_goals,
            "away_goals": self.away_goals,
            "points": self.points,
            "result": describe_points(self.points) if self._is_scored() else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_user and self.user:
            data["user"] = self.user.to_summary()

        if include_match and self.match:
            data["match"] = self.match.to_summary()

        return data

    def _is_scored(self):
        return self.match is not None and self.match.is_scoreable
