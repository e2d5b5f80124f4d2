from functools import wraps

from flask import current_app, request
from flask_login import current_user

from predictor.errors import ForbiddenError


def admin_required(f):
    """Reject non-admin callers; use below @login_required"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            raise ForbiddenError("Admin privileges required")
        return f(*args, **kwargs)

    return decorated_function


def get_pagination():
    """Read page and limit query arguments, clamped to sane bounds"""
    default_limit = current_app.config.get("ITEMS_PER_PAGE", 10)
    max_limit = current_app.config.get("MAX_ITEMS_PER_PAGE", 50)

    page = max(request.args.get("page", 1, type=int) or 1, 1)
    limit = request.args.get("limit", default_limit, type=int) or default_limit
    limit = min(max(limit, 1), max_limit)
    return page, limit


def pagination_meta(page, limit, total):
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit,
    }
