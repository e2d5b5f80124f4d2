"""
tests/test_prediction_service.py: create, update, delete and list predictions
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from predictor import db
from predictor.errors import (
    ConflictError,
    ForbiddenError,
    InvalidPredictionError,
    LockedError,
    NotFoundError,
)
from predictor.models import Match, Prediction
from predictor.services import prediction_service
from predictor.utils.timezone_utils import get_utc_time


@pytest.fixture
def user_id(make_user):
    return make_user(name="John Doe")


@pytest.fixture
def match_id(make_match):
    return make_match()


def _kickoff(match_id):
    return db.session.get(Match, match_id).kickoff_time_utc


def test_create_prediction(app_ctx, user_id, match_id):
    prediction = prediction_service.create_prediction(user_id, match_id, 2, 1)

    assert prediction.id is not None
    assert (prediction.home_goals, prediction.away_goals) == (2, 1)
    assert prediction.points == 0
    assert Prediction.query.count() == 1


def test_create_prediction_up_to_last_second_before_kickoff(app_ctx, user_id, match_id):
    now = _kickoff(match_id) - timedelta(seconds=1)
    prediction = prediction_service.create_prediction(user_id, match_id, 0, 0, now=now)
    assert prediction.id is not None


def test_create_prediction_locked_at_kickoff(app_ctx, user_id, match_id):
    with pytest.raises(LockedError):
        prediction_service.create_prediction(
            user_id, match_id, 1, 0, now=_kickoff(match_id)
        )
    assert Prediction.query.count() == 0


def test_create_prediction_for_unknown_match(app_ctx, user_id):
    with pytest.raises(NotFoundError):
        prediction_service.create_prediction(user_id, 999, 1, 0)


def test_create_prediction_twice_conflicts(app_ctx, user_id, match_id):
    prediction_service.create_prediction(user_id, match_id, 1, 0)

    with pytest.raises(ConflictError):
        prediction_service.create_prediction(user_id, match_id, 3, 3)

    stored = Prediction.query.one()
    assert (stored.home_goals, stored.away_goals) == (1, 0)


class _QueryMissingExisting:
    """Lookup that misses the existing row, as a concurrent request would"""

    def filter_by(self, **kwargs):
        return self

    def first(self):
        return None


def test_unique_constraint_rejects_duplicate_missed_by_lookup(app_ctx, monkeypatch, user_id,
                                                              match_id, make_prediction):
    make_prediction(user_id, match_id, 1, 0)

    with monkeypatch.context() as m:
        m.setattr(Prediction, "query", _QueryMissingExisting())
        with pytest.raises(ConflictError):
            prediction_service.create_prediction(user_id, match_id, 3, 3)

    stored = Prediction.query.one()
    assert (stored.home_goals, stored.away_goals) == (1, 0)


def test_other_users_may_predict_the_same_match(app_ctx, make_user, user_id, match_id):
    other_id = make_user()
    prediction_service.create_prediction(user_id, match_id, 1, 0)
    prediction_service.create_prediction(other_id, match_id, 1, 0)
    assert Prediction.query.count() == 2


@pytest.mark.parametrize(
    "home, away, field",
    [
        (-1, 0, "home_goals"),
        (0, 21, "away_goals"),
        (1.5, 0, "home_goals"),
        (True, 0, "home_goals"),
        (None, 0, "home_goals"),
        (0, "2", "away_goals"),
    ],
)
def test_create_prediction_rejects_invalid_goals(app_ctx, user_id, match_id, home, away, field):
    with pytest.raises(InvalidPredictionError) as excinfo:
        prediction_service.create_prediction(user_id, match_id, home, away)

    assert field in excinfo.value.details
    assert Prediction.query.count() == 0


def test_validation_runs_before_match_lookup(app_ctx, user_id):
    with pytest.raises(InvalidPredictionError):
        prediction_service.create_prediction(user_id, 999, -1, 0)


def test_max_goals_is_configurable(app_ctx, user_id, match_id):
    app_ctx.config["MAX_GOALS"] = 5
    with pytest.raises(InvalidPredictionError):
        prediction_service.create_prediction(user_id, match_id, 6, 0)
    prediction_service.create_prediction(user_id, match_id, 5, 0)


def test_update_prediction(app_ctx, user_id, match_id, make_prediction):
    prediction_id = make_prediction(user_id, match_id, 1, 0, points=2)

    updated = prediction_service.update_prediction(prediction_id, user_id, 2, 2)

    assert (updated.home_goals, updated.away_goals) == (2, 2)
    assert updated.points == 2


def test_update_prediction_by_other_user_is_forbidden(app_ctx, make_user, user_id,
                                                     match_id, make_prediction):
    prediction_id = make_prediction(user_id, match_id, 1, 0)
    other_id = make_user()

    with pytest.raises(ForbiddenError):
        prediction_service.update_prediction(prediction_id, other_id, 2, 2)

    stored = db.session.get(Prediction, prediction_id)
    assert (stored.home_goals, stored.away_goals) == (1, 0)


def test_update_prediction_after_kickoff_is_locked(app_ctx, user_id, match_id, make_prediction):
    prediction_id = make_prediction(user_id, match_id, 1, 0, points=1)

    with pytest.raises(LockedError):
        prediction_service.update_prediction(
            prediction_id, user_id, 2, 2, now=_kickoff(match_id) + timedelta(minutes=1)
        )

    stored = db.session.get(Prediction, prediction_id)
    assert (stored.home_goals, stored.away_goals) == (1, 0)
    assert stored.points == 1


def test_update_unknown_prediction(app_ctx, user_id):
    with pytest.raises(NotFoundError):
        prediction_service.update_prediction(12345, user_id, 1, 1)


def test_update_validates_goals_before_ownership(app_ctx, make_user, user_id,
                                                 match_id, make_prediction):
    prediction_id = make_prediction(user_id, match_id, 1, 0)
    other_id = make_user()

    with pytest.raises(InvalidPredictionError):
        prediction_service.update_prediction(prediction_id, other_id, -1, 0)


def test_delete_prediction(app_ctx, user_id, match_id, make_prediction):
    prediction_id = make_prediction(user_id, match_id, 1, 0)

    prediction_service.delete_prediction(prediction_id, user_id)

    assert db.session.get(Prediction, prediction_id) is None


def test_delete_prediction_rules(app_ctx, make_user, user_id, match_id, make_prediction):
    prediction_id = make_prediction(user_id, match_id, 1, 0)

    with pytest.raises(ForbiddenError):
        prediction_service.delete_prediction(prediction_id, make_user())

    with pytest.raises(LockedError):
        prediction_service.delete_prediction(
            prediction_id, user_id, now=_kickoff(match_id)
        )

    with pytest.raises(NotFoundError):
        prediction_service.delete_prediction(prediction_id + 100, user_id)

    assert db.session.get(Prediction, prediction_id) is not None


def test_deleted_prediction_can_be_created_again(app_ctx, user_id, match_id):
    prediction = prediction_service.create_prediction(user_id, match_id, 1, 0)
    prediction_service.delete_prediction(prediction.id, user_id)

    again = prediction_service.create_prediction(user_id, match_id, 0, 1)
    assert (again.home_goals, again.away_goals) == (0, 1)


def test_list_predictions_filters_and_pages(app_ctx, make_user, make_match, make_prediction):
    first_user = make_user()
    second_user = make_user()
    first_match = make_match()
    second_match = make_match(home_team="France", away_team="Australia")

    make_prediction(first_user, first_match, 1, 0)
    make_prediction(first_user, second_match, 2, 0)
    make_prediction(second_user, first_match, 0, 0)

    items, total = prediction_service.list_predictions(user_id=first_user)
    assert total == 2
    assert {p.match_id for p in items} == {first_match, second_match}

    items, total = prediction_service.list_predictions(match_id=first_match)
    assert total == 2
    assert {p.user_id for p in items} == {first_user, second_user}

    items, total = prediction_service.list_predictions(page=2, limit=2)
    assert total == 3
    assert len(items) == 1


def test_list_predictions_newest_first(app_ctx, user_id, make_match):
    older = prediction_service.create_prediction(user_id, make_match(), 1, 0)
    newer = prediction_service.create_prediction(
        user_id, make_match(home_team="Spain", away_team="Japan"), 2, 0
    )

    items, _ = prediction_service.list_predictions(user_id=user_id)
    assert [p.id for p in items] == [newer.id, older.id]


def test_store_uses_supplied_now_for_gate(app_ctx, user_id, make_match):
    past_match = make_match(kickoff_in=timedelta(hours=-1))
    earlier = get_utc_time() - timedelta(hours=2)

    prediction = prediction_service.create_prediction(user_id, past_match, 1, 1, now=earlier)
    assert prediction.id is not None


def test_database_rejects_negative_goals(app_ctx, user_id, match_id, make_prediction):
    with pytest.raises(IntegrityError):
        make_prediction(user_id, match_id, -1, 0)
