"""
Prediction store operations: create, update and delete a user's prediction.

Every operation checks its preconditions first and writes a single record in
one transaction, so a rejected request leaves the store untouched. The
current time is sampled once by the caller (or here, when not supplied) and
used for every gate check of the operation.
"""

import logging

from flask import current_app
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
from predictor.utils.gate import GateState, gate_state
from predictor.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


def validate_goals(home_goals, away_goals, max_goals=None):
    """Raise InvalidPredictionError unless both values are whole numbers in range"""
    if max_goals is None:
        max_goals = current_app.config.get("MAX_GOALS", 20)

    errors = {}
    for field, value in (("home_goals", home_goals), ("away_goals", away_goals)):
        if isinstance(value, bool) or not isinstance(value, int):
            errors[field] = "Must be a whole number"
        elif value < 0:
            errors[field] = "Must be 0 or greater"
        elif value > max_goals:
            errors[field] = f"Must be {max_goals} or less"

    if errors:
        raise InvalidPredictionError(details=errors)


def _require_open(match, now, action):
    if gate_state(now, match.kickoff_time) is GateState.LOCKED:
        raise LockedError(f"Cannot {action} prediction after match has started")


def _get_owned_prediction(prediction_id, caller_user_id):
    prediction = db.session.get(Prediction, prediction_id)
    if prediction is None:
        raise NotFoundError("Prediction not found")
    if prediction.user_id != caller_user_id:
        raise ForbiddenError()
    return prediction


def create_prediction(user_id, match_id, home_goals, away_goals, now=None):
    """Create a prediction while the match gate is open.

    Raises:
        InvalidPredictionError, NotFoundError, LockedError, ConflictError
    """
    now = now or get_utc_time()
    validate_goals(home_goals, away_goals)

    match = db.session.get(Match, match_id)
    if match is None:
        raise NotFoundError("Match not found")

    _require_open(match, now, "create")

    existing = Prediction.query.filter_by(user_id=user_id, match_id=match_id).first()
    if existing is not None:
        raise ConflictError()

    prediction = Prediction(
        user_id=user_id,
        match_id=match_id,
        home_goals=home_goals,
        away_goals=away_goals,
        points=0,
    )
    db.session.add(prediction)

    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request won the unique (user, match) constraint
        db.session.rollback()
        logger.info(f"Duplicate prediction rejected by store: user={user_id} match={match_id}")
        raise ConflictError()

    logger.info(
        f"Prediction {prediction.id} created: user={user_id} match={match_id} "
        f"{home_goals}-{away_goals}"
    )
    return prediction


def update_prediction(prediction_id, caller_user_id, home_goals, away_goals, now=None):
    """Replace the predicted goals; points are left as they are.

    Raises:
        InvalidPredictionError, NotFoundError, ForbiddenError, LockedError
    """
    now = now or get_utc_time()
    validate_goals(home_goals, away_goals)

    prediction = _get_owned_prediction(prediction_id, caller_user_id)
    _require_open(prediction.match, now, "update")

    prediction.home_goals = home_goals
    prediction.away_goals = away_goals
    db.session.commit()

    logger.info(f"Prediction {prediction.id} updated to {home_goals}-{away_goals}")
    return prediction


def delete_prediction(prediction_id, caller_user_id, now=None):
    """Delete a prediction while the match gate is open.

    Raises:
        NotFoundError, ForbiddenError, LockedError
    """
    now = now or get_utc_time()

    prediction = _get_owned_prediction(prediction_id, caller_user_id)
    _require_open(prediction.match, now, "delete")

    db.session.delete(prediction)
    db.session.commit()

    logger.info(f"Prediction {prediction_id} deleted by user {caller_user_id}")


def list_predictions(user_id=None, match_id=None, page=1, limit=10):
    """Newest-first page of predictions, optionally filtered by user and match"""
    query = Prediction.query

    if user_id is not None:
        query = query.filter(Prediction.user_id == user_id)
    if match_id is not None:
        query = query.filter(Prediction.match_id == match_id)

    total = query.count()
    predictions = (
        query.order_by(Prediction.created_at.desc(), Prediction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return predictions, total
