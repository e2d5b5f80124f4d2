"""
Shared fixtures: a fresh testing app per test, factories that persist
records in their own app context and return ids, and a login helper.
"""

from datetime import timedelta

import pytest

from predictor import create_app, db
from predictor.models import Match, MatchStatus, Prediction, User
from predictor.utils.timezone_utils import get_utc_time

PASSWORD = "password123"


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Push an app context for tests that call services directly"""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(name=None, email=None, department="Engineering", is_admin=False,
              is_active=True, password=PASSWORD):
        counter["n"] += 1
        with app.app_context():
            user = User(
                email=email or f"user{counter['n']}@company.com",
                name=name or f"User {counter['n']}",
                department=department,
                is_admin=is_admin,
                is_active=is_active,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture
def make_match(app):
    def _make(home_team="Brazil", away_team="Serbia", kickoff_in=timedelta(days=1),
              kickoff_time=None, status=MatchStatus.SCHEDULED.value,
              home_score=None, away_score=None, round="Group G", venue="Stadium 974"):
        with app.app_context():
            match = Match(
                home_team=home_team,
                away_team=away_team,
                kickoff_time=kickoff_time or get_utc_time() + kickoff_in,
                status=status,
                home_score=home_score,
                away_score=away_score,
                round=round,
                venue=venue,
            )
            db.session.add(match)
            db.session.commit()
            return match.id

    return _make


@pytest.fixture
def make_prediction(app):
    """Insert a prediction directly, bypassing the gate"""

    def _make(user_id, match_id, home_goals, away_goals, points=0):
        with app.app_context():
            prediction = Prediction(
                user_id=user_id,
                match_id=match_id,
                home_goals=home_goals,
                away_goals=away_goals,
                points=points,
            )
            db.session.add(prediction)
            db.session.commit()
            return prediction.id

    return _make


@pytest.fixture
def login(client, app):
    def _login(user_id):
        with app.app_context():
            email = db.session.get(User, user_id).email
        response = client.post(
            "/auth/login", json={"email": email, "password": PASSWORD}
        )
        assert response.status_code == 200, response.get_json()
        return response

    return _login


class SequenceRandom:
    """Deterministic stand-in for random.Random"""

    def __init__(self, values, choice_index=0):
        self.values = list(values)
        self.choice_index = choice_index

    def random(self):
        return self.values.pop(0)

    def choice(self, seq):
        return seq[self.choice_index]


@pytest.fixture
def sequence_random():
    return SequenceRandom
