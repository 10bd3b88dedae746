# storefront/coupon/routes.py
from __future__ import annotations

from flask import request

from . import bp
from ..extensions import db
from ..model import Coupon
from ..services import coupon_service
from ..utils.api import ok
from ..utils.decorators import role_required
from ..utils.errors import NotFoundError


def _get_coupon(coupon_id) -> Coupon:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFoundError("Not found")
    return c


@bp.post("")
@role_required("admin")
def create_coupon():
    c = coupon_service.create_coupon(request.get_json(silent=True) or {})
    return ok("Coupon created", c.as_api(), status=201)


@bp.get("")
@role_required("admin")
def list_coupons():
    q = Coupon.query
    active = request.args.get("active")
    if active is not None:
        q = q.filter(Coupon.active == (active.lower() == "true"))
    items = q.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()
    return ok("ok", [c.as_api() for c in items])


@bp.get("/<int:coupon_id>")
@role_required("admin")
def get_coupon(coupon_id):
    return ok("ok", _get_coupon(coupon_id).as_api())


@bp.put("/<int:coupon_id>")
@role_required("admin")
def update_coupon(coupon_id):
    c = coupon_service.update_coupon(_get_coupon(coupon_id), request.get_json(silent=True) or {})
    return ok("Coupon updated", c.as_api())


@bp.delete("/<int:coupon_id>")
@role_required("admin")
def delete_coupon(coupon_id):
    c = _get_coupon(coupon_id)
    db.session.delete(c)
    db.session.commit()
    return ok("Deleted", {"id": coupon_id})
