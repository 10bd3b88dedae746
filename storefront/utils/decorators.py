# ------- storefront/utils/decorators.py -------
from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from ..extensions import db
from ..utils.api import api_error
from ..model.user import User

ROLE_LEVEL = {"user": 1, "seller": 2, "admin": 3}


def current_user(optional=False):
    verify_jwt_in_request(optional=optional)
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(User, uid) if uid else None


def optional_viewer():
    """The caller when a valid token is sent; None for a missing, expired or malformed one."""
    try:
        return current_user(optional=True)
    except (JWTExtendedException, PyJWTError):
        return None


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user():
            return jsonify(api_error("Unauthorized")), 401
        return fn(*args, **kwargs)
    return wrapper


def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                return jsonify(api_error("Unauthorized")), 401
            if u.role not in roles:
                return jsonify(api_error(message or "Forbidden")), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def role_at_least(min_role: str, message: str | None = None):  # admin > seller > user
    min_level = ROLE_LEVEL[min_role]
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if not u:
                return jsonify(api_error("Unauthorized")), 401
            if ROLE_LEVEL.get(u.role, 0) < min_level:
                return jsonify(api_error(message or "Forbidden")), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
