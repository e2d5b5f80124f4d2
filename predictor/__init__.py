import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFError, CSRFProtect

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
login_manager = LoginManager()
socketio = SocketIO()
cache = Cache()
migrate = Migrate()
csrf = CSRFProtect()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    # X-Forwarded-For: client, proxy1, proxy2, ...
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


limiter = Limiter(
    key_func=get_real_ip,
    default_limits=["10000 per day", "1000 per hour"],
    storage_uri=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
)


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SECURE"] = (
        False
        if app.config.get("DEBUG")
        else app.config.get("FLASK_ENV") == "production"
    )
    app.config["PERMANENT_SESSION_LIFETIME"] = 86400  # 24 hours
    app.config["WTF_CSRF_TIME_LIMIT"] = None

    # Setup logging first so extension start-up messages are captured
    from predictor.utils.logging_config import setup_logging

    setup_logging(app)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    limiter.init_app(app)

    allowed_origins = os.environ.get("ALLOWED_ORIGINS", "*")
    if allowed_origins != "*":
        allowed_origins = allowed_origins.split(",")

    # Use Redis as Socket.IO message queue when available (multiple workers)
    message_queue = None
    redis_url = os.environ.get("REDIS_URL")
    if redis_url and not app.config.get("TESTING"):
        try:
            import redis

            redis.Redis.from_url(redis_url).ping()
            message_queue = redis_url
            logger.info(f"Socket.IO using Redis message queue at {redis_url}")
        except redis.exceptions.ConnectionError as e:
            logger.warning(f"Redis not available for Socket.IO message queue: {e}")

    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "eventlet"),
        ping_timeout=60,
        ping_interval=25,
        message_queue=message_queue,
    )

    login_manager.login_view = "auth.login"

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "unauthorized", "message": "Login required"}), 401

    # Import and register blueprints
    from predictor.routes.auth import bp as auth_bp

    app.register_blueprint(auth_bp, url_prefix="/auth")

    from predictor.routes.main import bp as main_bp

    app.register_blueprint(main_bp)

    from predictor.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    from predictor.routes.matches import bp as matches_bp

    app.register_blueprint(matches_bp, url_prefix="/api/matches")

    register_error_handlers(app)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Match lookup collaborator selected by configuration
    from predictor.services.match_source import create_match_source

    app.extensions["match_source"] = create_match_source(app)

    # Background scheduler and live score simulator, one per application
    from predictor.services.scheduler_service import SchedulerService
    from predictor.services.live_simulation import LiveScoreSimulator

    scheduler_service = SchedulerService(app)
    app.extensions["scheduler_service"] = scheduler_service
    app.extensions["live_simulator"] = LiveScoreSimulator(
        app,
        scheduler_service,
        interval=app.config["LIVE_SIMULATION_INTERVAL"],
        goal_chance=app.config["LIVE_SIMULATION_GOAL_CHANCE"],
    )

    if app.config.get("SCHEDULER_ENABLED") and not app.config.get("TESTING"):
        scheduler_service.start()
        if app.config.get("LIVE_SIMULATION_ENABLED"):
            app.extensions["live_simulator"].start()

    # Register SocketIO handlers
    from predictor import socketio_handlers  # noqa: F401 - imported for side effects

    logger.info(f"Prediction pool started with '{config_name}' configuration")

    return app


def register_error_handlers(app):
    """Register global error handlers"""
    from predictor.errors import PredictionPoolError

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"

        if not app.config.get("DEBUG"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response

    @app.errorhandler(PredictionPoolError)
    def handle_pool_error(error):
        db.session.rollback()
        app.logger.info(
            f"{error.kind} rejected: {error.message} - Path: {request.path}"
        )
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        app.logger.warning(f"CSRF Error: {error.description} - Path: {request.path}")
        return jsonify({"error": "csrf", "message": error.description}), 400

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "bad_request", "message": "Bad request"}), 400

    @app.errorhandler(403)
    def forbidden_error(error):
        return jsonify({"error": "forbidden", "message": "Access forbidden"}), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return (
            jsonify({"error": "method_not_allowed", "message": "Method not allowed"}),
            405,
        )

    @app.errorhandler(429)
    def too_many_requests_error(error):
        return (
            jsonify({"error": "too_many_requests", "message": "Too many requests"}),
            429,
        )

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return (
            jsonify({"error": "internal", "message": "Internal server error"}),
            500,
        )


from predictor import models  # noqa: F401, E402 - imported for model registration
