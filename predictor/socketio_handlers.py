"""
SocketIO event handlers for real-time match updates

Clients connect to the /matches namespace and join one room per match they
are watching. Authenticated clients also join a personal room that receives
their prediction point changes. Broadcasts are fire-and-forget: a failure is
logged and never reaches the caller.
"""

import logging
from datetime import datetime, timezone

from flask import request
from flask_login import current_user
from flask_socketio import emit, join_room, leave_room

from predictor import socketio

logger = logging.getLogger(__name__)

NAMESPACE = "/matches"


def match_room(match_id):
    return f"match_{match_id}"


def user_room(user_id):
    return f"user_{user_id}"


def _timestamp():
    return datetime.now(timezone.utc).isoformat()


@socketio.on("connect", namespace=NAMESPACE)
def on_connect():
    """Handle client connection to the matches namespace"""
    try:
        user_id = current_user.id if current_user.is_authenticated else None
        if user_id is not None:
            join_room(user_room(user_id))

        logger.info(f"Client connected to {NAMESPACE}: {request.sid} (user: {user_id})")
    except Exception as e:
        logger.error(f"Error in matches connect: {e}")


@socketio.on("disconnect", namespace=NAMESPACE)
def on_disconnect(*args):
    logger.debug(f"Client disconnected from {NAMESPACE}: {request.sid}")


@socketio.on("join_match", namespace=NAMESPACE)
def on_join_match(data):
    """Subscribe to updates for a specific match"""
    try:
        match_id = (data or {}).get("match_id")
        if not match_id:
            return

        join_room(match_room(match_id))
        emit("joined", {"match_id": match_id})
        logger.debug(f"Client {request.sid} joined match {match_id}")
    except Exception as e:
        logger.error(f"Error in join_match: {e}")


@socketio.on("leave_match", namespace=NAMESPACE)
def on_leave_match(data):
    """Unsubscribe from updates for a specific match"""
    try:
        match_id = (data or {}).get("match_id")
        if not match_id:
            return

        leave_room(match_room(match_id))
        logger.debug(f"Client {request.sid} left match {match_id}")
    except Exception as e:
        logger.error(f"Error in leave_match: {e}")


# Broadcast functions (called from routes, the scheduler and the simulator)
def broadcast_match_created(match):
    try:
        socketio.emit("match:created", match.to_dict(), namespace=NAMESPACE)
        logger.debug(f"Broadcasted creation of match {match.id}")
    except Exception as e:
        logger.error(f"Error broadcasting match creation: {e}")


def broadcast_match_updated(match):
    try:
        socketio.emit("match:updated", match.to_dict(), namespace=NAMESPACE)
    except Exception as e:
        logger.error(f"Error broadcasting match update: {e}")


def broadcast_match_deleted(match_id):
    try:
        socketio.emit("match:deleted", {"match_id": match_id}, namespace=NAMESPACE)
    except Exception as e:
        logger.error(f"Error broadcasting match deletion: {e}")


def broadcast_score_update(match):
    """Score change: global update plus the match room"""
    try:
        event = {
            "match_id": match.id,
            "type": "SCORE_UPDATE",
            "data": {
                "home_score": match.home_score,
                "away_score": match.away_score,
                "timestamp": _timestamp(),
            },
        }
        socketio.emit("match:updated", event, namespace=NAMESPACE)
        socketio.emit("match:score", event, room=match_room(match.id), namespace=NAMESPACE)
        logger.debug(f"Broadcasted score update for match {match.id}")
    except Exception as e:
        logger.error(f"Error broadcasting score update: {e}")


def broadcast_status_change(match):
    """Status change: global update plus the match room"""
    try:
        event = {
            "match_id": match.id,
            "type": "STATUS_CHANGE",
            "data": {"status": match.status, "timestamp": _timestamp()},
        }
        socketio.emit("match:updated", event, namespace=NAMESPACE)
        socketio.emit("match:status", event, room=match_room(match.id), namespace=NAMESPACE)
        logger.debug(f"Broadcasted status change for match {match.id}")
    except Exception as e:
        logger.error(f"Error broadcasting status change: {e}")


def broadcast_points_changed(predictions):
    """Tell each owner about their re-scored predictions, then the leaderboard"""
    if not predictions:
        return

    try:
        for prediction in predictions:
            socketio.emit(
                "prediction:points",
                {
                    "prediction_id": prediction.id,
                    "match_id": prediction.match_id,
                    "points": prediction.points,
                },
                room=user_room(prediction.user_id),
                namespace=NAMESPACE,
            )

        socketio.emit(
            "leaderboard:changed",
            {"updated_count": len(predictions), "timestamp": _timestamp()},
            namespace=NAMESPACE,
        )
        logger.info(f"Broadcasted point changes for {len(predictions)} predictions")
    except Exception as e:
        logger.error(f"Error broadcasting point changes: {e}")
