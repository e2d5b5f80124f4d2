import logging

from flask import current_app, jsonify, request
from flask_login import current_user, login_required

from predictor import db
from predictor.errors import (
    ConflictError,
    InvalidMatchError,
    InvalidRequestError,
    NotFoundError,
)
from predictor.forms import load_json_form, sanitize_input
from predictor.forms.matches import MatchForm, MatchUpdateForm
from predictor.models import Match, MatchStatus
from predictor.routes import admin_required, get_pagination, pagination_meta
from predictor.routes.matches import bp
from predictor.services.match_source import (
    DatabaseMatchSource,
    MockMatchSource,
    generate_mock_api_response,
)
from predictor.services.recalculation import settle_match
from predictor.socketio_handlers import (
    broadcast_match_created,
    broadcast_match_deleted,
    broadcast_match_updated,
    broadcast_score_update,
    broadcast_status_change,
)
from predictor.utils.cache_utils import cached_route, invalidate_model_cache
from predictor.utils.gate import gate_info
from predictor.utils.timezone_utils import get_utc_time, parse_iso_datetime

logger = logging.getLogger(__name__)


def _match_source():
    return current_app.extensions["match_source"]


def _list_filters():
    filters = {
        "round": request.args.get("round") or None,
        "team": request.args.get("team") or None,
    }

    status = request.args.get("status")
    filters["status"] = MatchStatus.parse(status).value if status else None

    for key in ("date_from", "date_to"):
        value = request.args.get(key)
        try:
            filters[key] = parse_iso_datetime(value) if value else None
        except ValueError:
            raise InvalidRequestError(details={key: "Must be an ISO-8601 date"})

    return filters


def _listing(source):
    page, limit = get_pagination()
    matches, total = source.list_matches(page=page, limit=limit, **_list_filters())
    return {
        "matches": [match.to_dict() for match in matches],
        "pagination": pagination_meta(page, limit, total),
        "source": source.name,
    }


def _get_match_or_404(match_id):
    match = _match_source().get(match_id)
    if match is None:
        raise NotFoundError("Match not found")
    return match


def _get_stored_match_or_404(match_id):
    match = DatabaseMatchSource().get(match_id)
    if match is None:
        raise NotFoundError("Match not found")
    return match


@bp.route("")
@cached_route(timeout=30, key_prefix="matches")
def list_matches():
    """Matches from the configured source, ordered by kickoff"""
    return _listing(_match_source())


@bp.route("/mock")
def mock_matches():
    """The built-in fixture list, regardless of the configured source"""
    source = _match_source()
    if not isinstance(source, MockMatchSource):
        source = MockMatchSource()
    return jsonify(_listing(source))


@bp.route("/api-football/simulate")
def api_football_simulate():
    """Fixtures rendered the way API-Football returns them"""
    source = _match_source()
    if not isinstance(source, MockMatchSource):
        source = MockMatchSource()
    return jsonify(generate_mock_api_response(source.all()))


@bp.route("/<match_id>")
def get_match(match_id):
    now = get_utc_time()
    match = _get_match_or_404(match_id)

    data = match.to_dict()
    data["gate"] = gate_info(now, match.kickoff_time)
    return jsonify({"match": data})


@bp.route("/<match_id>/gate")
def match_gate(match_id):
    now = get_utc_time()
    match = _get_match_or_404(match_id)
    return jsonify(gate_info(now, match.kickoff_time))


@bp.route("", methods=["POST"])
@login_required
@admin_required
def create_match():
    form = load_json_form(MatchForm, request.get_json(silent=True), InvalidMatchError)

    match = Match(
        home_team=sanitize_input(form.home_team.data),
        away_team=sanitize_input(form.away_team.data),
        kickoff_time=parse_iso_datetime(form.kickoff_time.data),
        status=MatchStatus.SCHEDULED.value,
        round=sanitize_input(form.round.data) or None,
        venue=sanitize_input(form.venue.data) or None,
    )
    db.session.add(match)
    db.session.commit()
    invalidate_model_cache("Match")

    logger.info(f"Admin {current_user.id} created match {match.id}: {match}")
    broadcast_match_created(match)
    return jsonify({"match": match.to_dict()}), 201


@bp.route("/<int:match_id>", methods=["PUT"])
@login_required
@admin_required
def update_match(match_id):
    data = request.get_json(silent=True)
    form = load_json_form(MatchUpdateForm, data, InvalidMatchError)
    match = _get_stored_match_or_404(match_id)

    old_status = match.status
    old_score = (match.home_score, match.away_score)

    for field in ("home_team", "away_team", "round", "venue"):
        if field in data:
            setattr(match, field, sanitize_input(getattr(form, field).data) or None)
    if not match.home_team or not match.away_team:
        raise InvalidMatchError(details={"teams": "Both teams are required"})
    if match.home_team == match.away_team:
        raise InvalidMatchError(details={"away_team": "A team cannot play itself"})

    if form.kickoff_time.data:
        match.kickoff_time = parse_iso_datetime(form.kickoff_time.data)

    became_final = match.apply_update(
        status=form.status.data or None,
        home_score=form.home_score.data,
        away_score=form.away_score.data,
    )
    db.session.commit()
    invalidate_model_cache("Match")

    logger.info(f"Admin {current_user.id} updated match {match.id}: {match}")
    broadcast_match_updated(match)
    if match.status != old_status:
        broadcast_status_change(match)
    if (match.home_score, match.away_score) != old_score:
        broadcast_score_update(match)

    # A corrected final score re-scores too
    if became_final or (
        match.is_scoreable and (match.home_score, match.away_score) != old_score
    ):
        settle_match(match.id)

    return jsonify({"match": match.to_dict()})


@bp.route("/<int:match_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_match(match_id):
    match = _get_stored_match_or_404(match_id)

    if match.predictions.count():
        raise ConflictError("Cannot delete a match that has predictions")

    db.session.delete(match)
    db.session.commit()
    invalidate_model_cache("Match")

    logger.info(f"Admin {current_user.id} deleted match {match_id}")
    broadcast_match_deleted(match_id)
    return "", 204
