"""
tests/test_recalculation.py: the re-scoring sweep
"""

from types import SimpleNamespace

from sqlalchemy.exc import OperationalError

from predictor import db
from predictor.models import MatchStatus, Prediction
from predictor.services.recalculation import (
    recalculate,
    recalculate_all,
    recalculate_for_match,
    settle_match,
)


def _match(status="FINISHED", home_score=2, away_score=1):
    return SimpleNamespace(status=status, home_score=home_score, away_score=away_score)


def _prediction(pid, match_id, home, away, points=0):
    return SimpleNamespace(
        id=pid, match_id=match_id, home_goals=home, away_goals=away, points=points
    )


def _store(prediction, points):
    prediction.points = points


def test_recalculate_scores_only_finished_matches():
    matches = {
        1: _match(),
        2: _match(status="LIVE"),
        3: _match(home_score=None, away_score=None),
    }
    predictions = [
        _prediction(1, 1, 2, 1),
        _prediction(2, 2, 2, 1),
        _prediction(3, 3, 0, 0),
        _prediction(4, 99, 1, 0),
    ]

    updated = recalculate(predictions, matches.get, _store)

    assert updated == 1
    assert [p.points for p in predictions] == [3, 0, 0, 0]


def test_recalculate_is_idempotent():
    matches = {1: _match(home_score=3, away_score=1)}
    predictions = [
        _prediction(1, 1, 3, 1),
        _prediction(2, 1, 2, 0),
        _prediction(3, 1, 1, 0),
        _prediction(4, 1, 0, 1),
    ]

    assert recalculate(predictions, matches.get, _store) == 3
    assert [p.points for p in predictions] == [3, 2, 1, 0]

    assert recalculate(predictions, matches.get, _store) == 0
    assert [p.points for p in predictions] == [3, 2, 1, 0]


def test_recalculate_only_writes_changed_points():
    matches = {1: _match()}
    predictions = [_prediction(1, 1, 2, 1, points=3), _prediction(2, 1, 3, 0, points=3)]
    writes = []

    def persist(prediction, points):
        writes.append(prediction.id)
        prediction.points = points

    assert recalculate(predictions, matches.get, persist) == 1
    assert writes == [2]
    assert predictions[1].points == 1


def test_recalculate_skips_failed_writes_and_continues():
    matches = {1: _match()}
    predictions = [_prediction(1, 1, 2, 1), _prediction(2, 1, 3, 0)]

    def persist(prediction, points):
        if prediction.id == 1:
            raise OperationalError("UPDATE predictions", {}, Exception("database is locked"))
        prediction.points = points

    assert recalculate(predictions, matches.get, persist) == 1
    assert predictions[0].points == 0
    assert predictions[1].points == 1

    # The skipped record is picked up by the next run
    assert recalculate(predictions, matches.get, _store) == 1
    assert predictions[0].points == 3


def test_recalculate_all_persists_points(app_ctx, make_user, make_match, make_prediction):
    first_user = make_user()
    second_user = make_user()
    finished = make_match(status=MatchStatus.FINISHED.value, home_score=2, away_score=0)
    scheduled = make_match(home_team="Spain", away_team="Japan")

    exact = make_prediction(first_user, finished, 2, 0)
    winner = make_prediction(second_user, finished, 4, 1)
    pending = make_prediction(first_user, scheduled, 1, 1)

    result = recalculate_all()

    assert result.updated_count == 2
    assert {p.id for p in result.changed} == {exact, winner}
    assert db.session.get(Prediction, exact).points == 3
    assert db.session.get(Prediction, winner).points == 1
    assert db.session.get(Prediction, pending).points == 0

    assert recalculate_all().updated_count == 0


def test_recalculate_all_corrects_stale_points(app_ctx, make_user, make_match, make_prediction):
    user_id = make_user()
    finished = make_match(status=MatchStatus.FINISHED.value, home_score=0, away_score=1)
    stale = make_prediction(user_id, finished, 2, 0, points=3)

    assert recalculate_all().updated_count == 1
    assert db.session.get(Prediction, stale).points == 0


def test_recalculate_for_match_leaves_other_matches(app_ctx, make_user, make_match, make_prediction):
    user_id = make_user()
    first = make_match(status=MatchStatus.FINISHED.value, home_score=1, away_score=1)
    second = make_match(
        home_team="Germany", away_team="Japan",
        status=MatchStatus.FINISHED.value, home_score=1, away_score=2,
    )
    on_first = make_prediction(user_id, first, 1, 1)
    on_second = make_prediction(user_id, second, 1, 2)

    result = recalculate_for_match(first)

    assert result.updated_count == 1
    assert db.session.get(Prediction, on_first).points == 3
    assert db.session.get(Prediction, on_second).points == 0


def test_settle_match_returns_changed_predictions(app_ctx, make_user, make_match, make_prediction):
    user_id = make_user()
    match_id = make_match(status=MatchStatus.FINISHED.value, home_score=4, away_score=0)
    prediction_id = make_prediction(user_id, match_id, 1, 0)

    result = settle_match(match_id)

    assert result.updated_count == 1
    assert result.changed[0].id == prediction_id
    assert result.changed[0].points == 1
