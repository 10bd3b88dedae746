from flask import Blueprint

bp = Blueprint("sponsored_admin", __name__, url_prefix="/api/admin/sponsored")
public_bp = Blueprint("sponsored", __name__, url_prefix="/api/sponsored")

from . import routes  # noqa: E402,F401
