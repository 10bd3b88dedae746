import logging
import uuid
from datetime import timedelta

from flask import request, current_app
from flask_jwt_extended import create_access_token, jwt_required
from werkzeug.security import generate_password_hash, check_password_hash

from . import bp
from ..extensions import db
from ..model import User, RefreshToken
from ..model.user import ROLES
from ..utils.api import ok, err
from ..utils.dates import utcnow
from ..utils.decorators import current_user, role_required

logger = logging.getLogger("storefront.auth")


# --- helper: create & persist a token pair ---
def _issue_tokens(user_id: int):
    access_token = create_access_token(identity=str(user_id))
    refresh_token_str = uuid.uuid4().hex
    refresh_row = RefreshToken(
        user_id=user_id,
        token=refresh_token_str,
        expires_at=utcnow() + current_app.config.get("JWT_REFRESH_TOKEN_EXPIRES", timedelta(days=30)),
    )
    db.session.add(refresh_row)
    return access_token, refresh_token_str


@bp.post("/register")
@jwt_required(optional=True)   # public signup; a role is honoured only for admin callers
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("name") or "").strip()

    if not email:
        return err("Email required")
    if not password or len(password) < 6:
        return err("Password required, min 6 chars")
    if not name:
        return err("Name required")
    if User.query.filter_by(email=email).first():
        return err("Email already registered", 409)

    # Bootstrap: very first account becomes admin
    is_first_user = db.session.query(User.id).count() == 0
    role = "admin" if is_first_user else "user"

    requested_role = (data.get("role") or "user").strip().lower()
    caller = current_user(optional=True)
    if not is_first_user and caller and caller.role == "admin" and requested_role in ROLES:
        role = requested_role

    user = User(email=email, password_hash=generate_password_hash(password), name=name, role=role)
    db.session.add(user)
    db.session.commit()
    logger.info("user %s registered with role %s", user.id, role)

    return ok("Account created successfully", {"user": user.as_dict()}, status=201)


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return err("Email and password are required")
    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, password):
        return err("Invalid email or password", 401)

    access_token, token_str = _issue_tokens(user.id)
    db.session.commit()

    return ok("You've logged in successfully", {
        "user": user.as_dict(),
        "token": access_token,
        "refresh_token": token_str,
    })


@bp.post("/refresh")
def refresh():
    data = request.get_json(silent=True) or {}
    token_str = data.get("refresh_token")
    if not token_str:
        return err("refresh_token is required")

    refresh_row = RefreshToken.query.filter_by(token=token_str).first()
    if not refresh_row or refresh_row.expires_at < utcnow():
        return err("Invalid or expired refresh token", 401)

    user_id = refresh_row.user_id

    # rotate: refresh tokens are single-use
    db.session.delete(refresh_row)
    db.session.flush()

    new_access, new_refresh = _issue_tokens(user_id)
    db.session.commit()

    return ok("Token refreshed", {"token": new_access, "refresh_token": new_refresh})


@bp.get("/me")
@jwt_required()
def me():
    user = current_user()
    if not user:
        return err("user not found", 404)
    return ok("OK", {"user": user.as_dict()})


@bp.get("/users")
@role_required("admin")
def list_users():
    items = [u.as_dict() for u in User.query.order_by(User.id.asc()).all()]
    return ok("OK", {"users": items})


@bp.patch("/users/<int:user_id>/role")
@role_required("admin")
def update_user_role(user_id):
    body = request.get_json(silent=True) or {}
    new_role = (body.get("role") or "").strip().lower()
    if new_role not in ROLES:
        return err("Invalid role")

    target = db.session.get(User, user_id)
    if not target:
        return err("User not found", 404)

    # never demote the last admin
    if target.role == "admin" and new_role != "admin":
        admin_count = db.session.query(User).filter_by(role="admin").count()
        if admin_count <= 1:
            return err("Cannot demote the last admin")

    target.role = new_role
    db.session.commit()
    return ok("Role updated", {"user": target.as_dict()})
