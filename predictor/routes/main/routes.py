import logging
from datetime import datetime, timezone

from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from predictor import db
from predictor.errors import InvalidRequestError, NotFoundError
from predictor.forms import load_json_form
from predictor.forms.matches import MatchStatusForm
from predictor.routes import admin_required
from predictor.routes.main import bp

logger = logging.getLogger(__name__)


@bp.route("/health")
def health():
    """Liveness check for load balancers and container orchestration"""
    database = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database = "unavailable"

    return jsonify(
        {
            "status": "ok" if database == "ok" else "degraded",
            "database": database,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": current_app.config.get("FLASK_ENV"),
        }
    )


@bp.route("/admin/scheduler")
@login_required
@admin_required
def admin_scheduler():
    """Scheduler status for the admin dashboard"""
    return jsonify(current_app.extensions["scheduler_service"].get_status())


@bp.route("/admin/scheduler/action", methods=["POST"])
@login_required
@admin_required
def admin_scheduler_action():
    """Handle admin scheduler actions"""
    scheduler_service = current_app.extensions["scheduler_service"]
    data = request.get_json(silent=True) or {}
    action = data.get("action")

    if action == "start":
        scheduler_service.start()
        return jsonify({"message": "Scheduler started successfully"})

    elif action == "stop":
        scheduler_service.stop()
        return jsonify({"message": "Scheduler stopped successfully"})

    elif action == "status":
        return jsonify(scheduler_service.get_status())

    elif action == "force_recalculate":
        success, message = scheduler_service.force_recalculate()
        if success:
            return jsonify({"message": message})
        return jsonify({"error": "recalculation_failed", "message": message}), 500

    elif action in ("pause_job", "resume_job"):
        job_id = data.get("job_id")
        if not job_id:
            raise InvalidRequestError("Job ID required")

        success, message = getattr(scheduler_service, action)(job_id)
        if success:
            return jsonify({"message": message})
        raise NotFoundError(message)

    raise InvalidRequestError(f"Unknown action: {action}")


@bp.route("/admin/simulation/<action>", methods=["POST"])
@login_required
@admin_required
def admin_simulation(action):
    """Start, stop or inspect the live score simulator"""
    simulator = current_app.extensions["live_simulator"]

    if action == "start":
        status = simulator.start()
    elif action == "stop":
        status = simulator.stop()
    elif action == "status":
        status = simulator.status()
    else:
        raise InvalidRequestError(f"Unknown simulation action: {action}")

    logger.info(f"Admin {current_user.id} simulation {action}: {status}")
    return jsonify(status)


@bp.route("/admin/simulation/matches/<match_id>/status", methods=["POST"])
@login_required
@admin_required
def admin_simulation_status(match_id):
    """Manually move a match to a new status"""
    form = load_json_form(MatchStatusForm, request.get_json(silent=True))
    simulator = current_app.extensions["live_simulator"]

    match = simulator.change_status(match_id, form.status.data)
    if match is None:
        raise NotFoundError("Match not found")

    return jsonify({"match": match.to_dict()})
