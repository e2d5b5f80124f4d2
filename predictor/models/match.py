from datetime import datetime, timezone
from enum import Enum

from predictor import db
from predictor.errors import InvalidMatchError
from predictor.utils.timezone_utils import ensure_utc, format_kickoff_time


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value):
        """Return the status for a string value, or raise InvalidMatchError"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidMatchError(f"Unknown match status: {value}")


# Statuses in which a match may carry a score
SCORED_STATUSES = (MatchStatus.LIVE, MatchStatus.FINISHED)


class MatchStateMixin:
    """Status and score rules shared by stored matches and mock fixtures.

    Expects id, home_team, away_team, kickoff_time, status, home_score,
    away_score, round and venue attributes.
    """

    @property
    def kickoff_time_utc(self):
        """Kickoff as an aware UTC datetime (SQLite hands back naive values)"""
        return ensure_utc(self.kickoff_time)

    @property
    def match_status(self):
        return MatchStatus(self.status)

    @property
    def is_scoreable(self):
        """True once the match is finished with both final scores recorded"""
        return (
            self.status == MatchStatus.FINISHED.value
            and self.home_score is not None
            and self.away_score is not None
        )

    def set_status(self, status):
        """Move the match to a new status, clearing scores where they are not allowed"""
        status = MatchStatus.parse(status)
        self.status = status.value
        if status not in SCORED_STATUSES:
            self.home_score = None
            self.away_score = None
        elif (
            status is MatchStatus.LIVE
            and self.home_score is None
            and self.away_score is None
        ):
            # A match that kicks off does so at 0-0
            self.home_score = 0
            self.away_score = 0

    def set_score(self, home_score, away_score):
        """Record a score; only valid while the match is live or finished"""
        if self.match_status not in SCORED_STATUSES:
            raise InvalidMatchError(
                f"Scores can only be set on live or finished matches (status is {self.status})"
            )
        for value in (home_score, away_score):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidMatchError("Scores must be non-negative whole numbers")
        self.home_score = home_score
        self.away_score = away_score

    def apply_update(self, status=None, home_score=None, away_score=None):
        """Apply a status and/or score change from an admin or the match feed.

        Returns True when this update gave the match its final result.
        """
        was_final = self.is_scoreable

        if status is not None:
            self.set_status(status)

        if home_score is not None or away_score is not None:
            self.set_score(
                self.home_score if home_score is None else home_score,
                self.away_score if away_score is None else away_score,
            )

        return self.is_scoreable and not was_final

    def to_dict(self):
        """Convert match to dictionary for API responses"""
        return {
            "id": self.id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "kickoff_time": self.kickoff_time_utc.isoformat(),
            "kickoff_local": format_kickoff_time(self.kickoff_time),
            "status": self.status,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "round": self.round,
            "venue": self.venue,
        }

    def to_summary(self):
        """Compact form embedded in prediction responses"""
        return {
            "id": self.id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "kickoff_time": self.kickoff_time_utc.isoformat(),
            "status": self.status,
            "home_score": self.home_score,
            "away_score": self.away_score,
        }


class Match(MatchStateMixin, db.Model):
    __tablename__ = "matches"

    id = db.Column(db.Integer, primary_key=True)

    # Teams
    home_team = db.Column(db.String(100), nullable=False)
    away_team = db.Column(db.String(100), nullable=False)

    # Match timing
    kickoff_time = db.Column(db.DateTime(timezone=True), nullable=False)

    # Status and scores
    status = db.Column(
        db.String(20), nullable=False, default=MatchStatus.SCHEDULED.value
    )
    home_score = db.Column(db.Integer)
    away_score = db.Column(db.Integer)

    # Additional match info
    round = db.Column(db.String(50))
    venue = db.Column(db.String(100))

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Predictions keep the match alive; deletion is refused while any exist
    predictions = db.relationship("Prediction", backref="match", lazy="dynamic")

    __table_args__ = (
        db.Index("idx_match_kickoff", "kickoff_time"),
        db.Index("idx_match_status", "status"),
        db.CheckConstraint("home_team != away_team", name="different_teams"),
        db.CheckConstraint(
            "home_score IS NULL OR home_score >= 0", name="home_score_non_negative"
        ),
        db.CheckConstraint(
            "away_score IS NULL OR away_score >= 0", name="away_score_non_negative"
        ),
    )

    def __repr__(self):
        return f"<Match {self.home_team} vs {self.away_team} ({self.status})>"

    def to_dict(self):
        data = super().to_dict()
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data
