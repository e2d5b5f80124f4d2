import logging

from flask import jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from predictor import db, limiter
from predictor.forms import load_json_form, sanitize_input
from predictor.forms.auth import LoginForm, RegistrationForm
from predictor.models import User
from predictor.routes.auth import bp

logger = logging.getLogger(__name__)


@bp.route("/register", methods=["POST"])
@limiter.limit("5 per hour")
def register():
    form = load_json_form(RegistrationForm, request.get_json(silent=True))

    user = User(
        email=form.email.data.strip().lower(),
        name=sanitize_input(form.name.data),
        department=sanitize_input(form.department.data) or None,
    )
    user.set_password(form.password.data)

    db.session.add(user)
    db.session.commit()
    login_user(user)

    logger.info(f"New user registered: {user.email}")
    return jsonify({"user": user.to_dict()}), 201


@bp.route("/login", methods=["POST"])
@limiter.limit("10 per minute")
def login():
    form = load_json_form(LoginForm, request.get_json(silent=True))

    user = User.query.filter_by(email=form.email.data.strip().lower()).first()
    if user is None or not user.check_password(form.password.data):
        logger.info(f"Failed login attempt for {form.email.data}")
        return (
            jsonify({"error": "unauthorized", "message": "Invalid email or password"}),
            401,
        )

    if not user.is_active:
        return (
            jsonify({"error": "forbidden", "message": "Your account has been deactivated"}),
            403,
        )

    login_user(user, remember=form.remember_me.data)
    user.update_last_login()

    logger.info(f"User {user.id} logged in")
    return jsonify({"user": user.to_dict()})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logger.info(f"User {current_user.id} logged out")
    logout_user()
    return jsonify({"message": "Logged out"})


@bp.route("/me")
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})


@bp.route("/csrf-token")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})
