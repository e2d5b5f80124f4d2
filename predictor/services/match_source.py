"""
Match sources: where match reads and live updates come from.

The database source serves persisted matches. The mock source serves a
private copy of a small World Cup fixture list for local development and
never touches the database. Both expose the same methods so routes and the
live simulator do not care which one is configured.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import or_

from predictor import db
from predictor.models import Match, MatchStatus
from predictor.models.match import MatchStateMixin
from predictor.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


@dataclass
class MockMatch(MatchStateMixin):
    id: str
    home_team: str
    away_team: str
    kickoff_time: datetime
    status: str = MatchStatus.SCHEDULED.value
    home_score: int = None
    away_score: int = None
    round: str = None
    venue: str = None
    created_at: datetime = field(default=None, repr=False)
    updated_at: datetime = field(default=None, repr=False)


def _utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


MOCK_FIXTURES = (
    MockMatch("mock-1", "Qatar", "Ecuador", _utc(2024, 12, 20, 16),
              round="Group A", venue="Al Bayt Stadium"),
    MockMatch("mock-2", "Senegal", "Netherlands", _utc(2024, 12, 20, 19),
              round="Group A", venue="Al Thumama Stadium"),
    MockMatch("mock-3", "England", "Iran", _utc(2024, 12, 21, 13),
              status="LIVE", home_score=2, away_score=0,
              round="Group B", venue="Khalifa International Stadium"),
    MockMatch("mock-4", "USA", "Wales", _utc(2024, 12, 21, 22),
              status="FINISHED", home_score=1, away_score=1,
              round="Group B", venue="Ahmad bin Ali Stadium"),
    MockMatch("mock-5", "Mexico", "Poland", _utc(2024, 12, 22, 17),
              round="Group C", venue="Stadium 974"),
    MockMatch("mock-6", "Denmark", "Tunisia", _utc(2024, 12, 22, 14),
              status="FINISHED", home_score=0, away_score=0,
              round="Group D", venue="Education City Stadium"),
    MockMatch("mock-7", "Brazil", "South Korea", _utc(2024, 12, 25, 20),
              round="Round of 16", venue="Stadium 974"),
    MockMatch("mock-8", "Argentina", "Australia", _utc(2024, 12, 26, 20),
              round="Round of 16", venue="Ahmad bin Ali Stadium"),
)

# API-Football short status codes
_SHORT_STATUS = {
    MatchStatus.SCHEDULED.value: "NS",
    MatchStatus.LIVE.value: "1H",
    MatchStatus.FINISHED.value: "FT",
    MatchStatus.CANCELLED.value: "CANC",
}


def _matches_filters(match, status=None, round=None, team=None, date_from=None, date_to=None):
    if status and match.status != status:
        return False
    if round and match.round != round:
        return False
    if team:
        needle = team.lower()
        if needle not in match.home_team.lower() and needle not in match.away_team.lower():
            return False
    kickoff = match.kickoff_time_utc
    if date_from and kickoff < date_from:
        return False
    if date_to and kickoff > date_to:
        return False
    return True


class MockMatchSource:
    """In-memory fixtures; each instance owns its own copy"""

    name = "mock"

    def __init__(self, fixtures=MOCK_FIXTURES):
        self._matches = [copy.deepcopy(m) for m in fixtures]

    def all(self):
        return list(self._matches)

    def get(self, match_id):
        return next((m for m in self._matches if m.id == str(match_id)), None)

    def list_matches(self, page=1, limit=10, **filters):
        matches = sorted(
            (m for m in self._matches if _matches_filters(m, **filters)),
            key=lambda m: m.kickoff_time_utc,
        )
        start = (page - 1) * limit
        return matches[start:start + limit], len(matches)

    def live_matches(self):
        return [m for m in self._matches if m.status == MatchStatus.LIVE.value]

    def apply_update(self, match, status=None, home_score=None, away_score=None):
        """Apply a status/score change; returns True when the match became final"""
        became_final = match.apply_update(status, home_score, away_score)
        match.updated_at = datetime.now(timezone.utc)
        return became_final

    def apply_score(self, match, home_score, away_score):
        return self.apply_update(match, home_score=home_score, away_score=away_score)

    def set_status(self, match, status):
        return self.apply_update(match, status=status)


class DatabaseMatchSource:
    """Persisted matches through Flask-SQLAlchemy"""

    name = "database"

    def get(self, match_id):
        try:
            match_id = int(match_id)
        except (TypeError, ValueError):
            return None
        return db.session.get(Match, match_id)

    def list_matches(self, page=1, limit=10, status=None, round=None, team=None,
                     date_from=None, date_to=None):
        query = Match.query

        if status:
            query = query.filter(Match.status == status)
        if round:
            query = query.filter(Match.round == round)
        if team:
            pattern = f"%{team}%"
            query = query.filter(
                or_(Match.home_team.ilike(pattern), Match.away_team.ilike(pattern))
            )
        if date_from:
            query = query.filter(Match.kickoff_time >= date_from)
        if date_to:
            query = query.filter(Match.kickoff_time <= date_to)

        total = query.count()
        matches = (
            query.order_by(Match.kickoff_time, Match.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return matches, total

    def live_matches(self):
        return (
            Match.query.filter(Match.status == MatchStatus.LIVE.value)
            .order_by(Match.id)
            .all()
        )

    def apply_update(self, match, status=None, home_score=None, away_score=None):
        """Apply and commit a status/score change; returns True when the match became final"""
        try:
            became_final = match.apply_update(status, home_score, away_score)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        invalidate_model_cache("Match")
        return became_final

    def apply_score(self, match, home_score, away_score):
        return self.apply_update(match, home_score=home_score, away_score=away_score)

    def set_status(self, match, status):
        return self.apply_update(match, status=status)


def create_match_source(app):
    """Build the match source named by MATCH_SOURCE"""
    source_name = app.config.get("MATCH_SOURCE", "database")
    if source_name == "mock":
        logger.info("Using in-memory mock fixtures for match reads")
        return MockMatchSource()
    if source_name != "database":
        logger.warning(f"Unknown MATCH_SOURCE '{source_name}', using database")
    return DatabaseMatchSource()


def _winner(own, other):
    if own is None or other is None:
        return None
    if own == other:
        return None
    return own > other


def generate_mock_api_response(matches, season=2026):
    """Render matches in the API-Football ``fixtures`` response shape"""
    response = []
    for match in matches:
        kickoff = match.kickoff_time_utc
        live = match.status == MatchStatus.LIVE.value
        finished = match.status == MatchStatus.FINISHED.value

        response.append(
            {
                "fixture": {
                    "id": match.id,
                    "referee": "TBD",
                    "timezone": "UTC",
                    "date": kickoff.isoformat(),
                    "timestamp": int(kickoff.timestamp()),
                    "periods": {"first": None, "second": None},
                    "venue": {"id": None, "name": match.venue, "city": "Doha"},
                    "status": {
                        "long": match.status,
                        "short": _SHORT_STATUS.get(match.status, "NS"),
                        "elapsed": 45 if live else None,
                    },
                },
                "league": {
                    "id": 1,
                    "name": "World Cup",
                    "country": "World",
                    "logo": "https://media.api-sports.io/football/leagues/1.png",
                    "flag": None,
                    "season": season,
                    "round": match.round,
                },
                "teams": {
                    "home": {
                        "id": None,
                        "name": match.home_team,
                        "logo": f"https://media.api-sports.io/football/teams/{match.home_team.lower()}.png",
                        "winner": _winner(match.home_score, match.away_score),
                    },
                    "away": {
                        "id": None,
                        "name": match.away_team,
                        "logo": f"https://media.api-sports.io/football/teams/{match.away_team.lower()}.png",
                        "winner": _winner(match.away_score, match.home_score),
                    },
                },
                "goals": {"home": match.home_score, "away": match.away_score},
                "score": {
                    "halftime": {
                        "home": (match.home_score or 0) // 2 if live else None,
                        "away": (match.away_score or 0) // 2 if live else None,
                    },
                    "fulltime": {
                        "home": match.home_score if finished else None,
                        "away": match.away_score if finished else None,
                    },
                    "extratime": {"home": None, "away": None},
                    "penalty": {"home": None, "away": None},
                },
            }
        )

    return {
        "get": "fixtures",
        "parameters": {"league": "1", "season": str(season)},
        "errors": [],
        "results": len(response),
        "paging": {"current": 1, "total": 1},
        "response": response,
    }
