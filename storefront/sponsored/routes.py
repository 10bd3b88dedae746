# storefront/sponsored/routes.py
from flask import request

from . import bp, public_bp
from ..extensions import db
from ..model import SponsoredPlacement
from ..services import placements
from ..services.impressions import record_click, record_impression
from ..utils.api import ok
from ..utils.decorators import current_user, optional_viewer, role_required
from ..utils.errors import NotFoundError
from ..utils.net import get_client_ip, get_user_agent, session_key


def _get_placement(pid) -> SponsoredPlacement:
    pl = db.session.get(SponsoredPlacement, pid)
    if not pl:
        raise NotFoundError("Not found")
    return pl


# -------- Admin --------
@bp.get("")
@role_required("admin")
def list_placements():
    q = SponsoredPlacement.query
    status = request.args.get("status")
    if status:
        q = q.filter(SponsoredPlacement.status == status.strip().lower())
    items = q.order_by(SponsoredPlacement.updated_at.desc(), SponsoredPlacement.id.desc()).all()
    return ok("ok", [p.as_api() for p in items])


@bp.post("")
@role_required("admin")
def create_placement():
    pl = placements.create_placement(request.get_json(silent=True) or {}, created_by=current_user().id)
    return ok("Placement created", pl.as_api(), status=201)


@bp.put("/<int:pid>")
@role_required("admin")
def update_placement(pid):
    pl = placements.update_placement(_get_placement(pid), request.get_json(silent=True) or {})
    return ok("Placement updated", pl.as_api())


@bp.delete("/<int:pid>")
@role_required("admin")
def delete_placement(pid):
    pl = _get_placement(pid)
    db.session.delete(pl)
    db.session.commit()
    return ok("Deleted", {"id": pid})


# -------- Public --------
def _track(pid, recorder):
    pl = _get_placement(pid)
    viewer = optional_viewer()
    counted = recorder(
        pl.id,
        session_key(),
        user_id=viewer.id if viewer else None,
        ip=get_client_ip(),
        ua=get_user_agent(),
        product_id=pl.product_id,
    )
    return ok("ok", {"ok": True, "counted": counted})


@public_bp.post("/<int:pid>/impression")
def sponsored_impression(pid):
    return _track(pid, record_impression)


@public_bp.post("/<int:pid>/click")
def sponsored_click(pid):
    return _track(pid, record_click)
