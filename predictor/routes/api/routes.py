import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from predictor.errors import InvalidPredictionError
from predictor.forms import load_json_form
from predictor.forms.predictions import PredictionForm, PredictionUpdateForm
from predictor.routes import admin_required, get_pagination, pagination_meta
from predictor.routes.api import bp
from predictor.services import prediction_service
from predictor.services.leaderboard import get_leaderboard
from predictor.services.recalculation import recalculate_all
from predictor.socketio_handlers import broadcast_points_changed
from predictor.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)


def _prediction_page(user_id=None, match_id=None):
    page, limit = get_pagination()
    predictions, total = prediction_service.list_predictions(
        user_id=user_id, match_id=match_id, page=page, limit=limit
    )
    return jsonify(
        {
            "predictions": [p.to_dict(include_user=True) for p in predictions],
            "pagination": pagination_meta(page, limit, total),
        }
    )


@bp.route("/predictions")
@login_required
def list_predictions():
    """All predictions, optionally filtered by user and match"""
    return _prediction_page(
        user_id=request.args.get("user_id", type=int),
        match_id=request.args.get("match_id", type=int),
    )


@bp.route("/predictions/my")
@login_required
def my_predictions():
    return _prediction_page(
        user_id=current_user.id, match_id=request.args.get("match_id", type=int)
    )


@bp.route("/predictions", methods=["POST"])
@login_required
def create_prediction():
    now = get_utc_time()
    form = load_json_form(
        PredictionForm, request.get_json(silent=True), InvalidPredictionError
    )

    prediction = prediction_service.create_prediction(
        user_id=current_user.id,
        match_id=form.match_id.data,
        home_goals=form.home_goals.data,
        away_goals=form.away_goals.data,
        now=now,
    )
    return jsonify({"prediction": prediction.to_dict()}), 201


@bp.route("/predictions/<int:prediction_id>", methods=["PUT"])
@login_required
def update_prediction(prediction_id):
    now = get_utc_time()
    form = load_json_form(
        PredictionUpdateForm, request.get_json(silent=True), InvalidPredictionError
    )

    prediction = prediction_service.update_prediction(
        prediction_id,
        current_user.id,
        form.home_goals.data,
        form.away_goals.data,
        now=now,
    )
    return jsonify({"prediction": prediction.to_dict()})


@bp.route("/predictions/<int:prediction_id>", methods=["DELETE"])
@login_required
def delete_prediction(prediction_id):
    prediction_service.delete_prediction(
        prediction_id, current_user.id, now=get_utc_time()
    )
    return "", 204


@bp.route("/predictions/leaderboard")
@login_required
def leaderboard():
    board = get_leaderboard(requesting_user_id=current_user.id)
    return jsonify(
        {
            "leaderboard": [entry.to_dict() for entry in board.entries],
            "user_rank": (
                board.requesting_user_entry.to_dict()
                if board.requesting_user_entry
                else None
            ),
        }
    )


@bp.route("/predictions/calculate-points", methods=["POST"])
@login_required
@admin_required
def calculate_points():
    """Run the recalculation sweep on demand"""
    result = recalculate_all()
    broadcast_points_changed(result.changed)

    logger.info(
        f"Admin {current_user.id} recalculated points: {result.updated_count} updated"
    )
    return jsonify(
        {
            "message": "Points calculated successfully",
            "updated_count": result.updated_count,
        }
    )
