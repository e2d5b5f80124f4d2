"""
Recalculation sweep: re-score predictions of finished matches.

The sweep is idempotent. Points are recomputed from the stored prediction
and the match result, and only records whose value differs are written, so
running it again straight away changes nothing. Each write is committed on
its own; an interrupted sweep leaves earlier records correct and the rest
for the next run.
"""

import logging
from collections import namedtuple

from sqlalchemy.exc import SQLAlchemyError

from predictor import db
from predictor.models import Match, MatchStatus, Prediction
from predictor.utils.scoring import calculate_points

logger = logging.getLogger(__name__)

RecalculationResult = namedtuple("RecalculationResult", ["updated_count", "changed"])


def _is_final(match):
    return (
        match is not None
        and match.status == MatchStatus.FINISHED.value
        and match.home_score is not None
        and match.away_score is not None
    )


def recalculate(predictions, match_lookup, persist):
    """
    Re-score predictions whose match has a final result.

    Args:
        predictions: iterable of objects with match_id, home_goals,
            away_goals and points
        match_lookup: callable returning the match for a match id (or None)
        persist: callable(prediction, points) that stores the new value;
            an exception from it skips that prediction only

    Returns:
        Number of predictions whose points were successfully changed
    """
    updated = 0

    for prediction in predictions:
        match = match_lookup(prediction.match_id)
        if not _is_final(match):
            continue

        points = calculate_points(
            prediction.home_goals,
            prediction.away_goals,
            match.home_score,
            match.away_score,
        )
        if points == prediction.points:
            continue

        try:
            persist(prediction, points)
        except SQLAlchemyError as e:
            logger.warning(
                f"Skipping prediction {getattr(prediction, 'id', '?')}: "
                f"failed to store {points} points: {e}"
            )
            continue

        updated += 1

    return updated


def _run_sweep(predictions):
    changed = []
    matches = {}

    def lookup(match_id):
        if match_id not in matches:
            matches[match_id] = db.session.get(Match, match_id)
        return matches[match_id]

    def persist(prediction, points):
        prediction.points = points
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        changed.append(prediction)

    updated = recalculate(predictions, lookup, persist)
    return RecalculationResult(updated, changed)


def recalculate_all():
    """Sweep every prediction attached to a finished match"""
    predictions = (
        Prediction.query.join(Match)
        .filter(
            Match.status == MatchStatus.FINISHED.value,
            Match.home_score.isnot(None),
            Match.away_score.isnot(None),
        )
        .order_by(Prediction.id)
        .all()
    )

    result = _run_sweep(predictions)
    logger.info(
        f"Recalculation sweep: {result.updated_count} of {len(predictions)} "
        f"predictions changed"
    )
    return result


def recalculate_for_match(match_id):
    """Sweep the predictions of a single match, e.g. right after its result is entered"""
    predictions = (
        Prediction.query.filter_by(match_id=match_id).order_by(Prediction.id).all()
    )

    result = _run_sweep(predictions)
    if result.updated_count:
        logger.info(
            f"Match {match_id}: recalculated {result.updated_count} predictions"
        )
    return result


def settle_match(match_id):
    """Re-score a match that just received its final result and notify clients"""
    from predictor.socketio_handlers import broadcast_points_changed

    result = recalculate_for_match(match_id)
    broadcast_points_changed(result.changed)
    return result
