# storefront/order/routes.py
import logging

from flask import request

from . import bp
from ..extensions import db
from ..model import Order
from ..model.order import ORDER_STATUSES
from ..services.checkout import place_order
from ..services.notifications import dispatch, send_order_delivered
from ..utils.api import ok, err
from ..utils.decorators import current_user, login_required, role_required
from ..utils.errors import NotFoundError

logger = logging.getLogger("storefront.orders")


def _get_order(order_id) -> Order:
    o = db.session.get(Order, order_id)
    if not o:
        raise NotFoundError("Order not found")
    return o


# POST /api/orders  {address, shipping_method}
@bp.post("")
@login_required
def create_order():
    user = current_user()
    data = request.get_json(silent=True) or {}
    order = place_order(
        user,
        data.get("address"),
        shipping_method=data.get("shipping_method") or data.get("shippingMethod"),
    )
    return ok("Order placed", order.as_api(), status=201)


# GET /api/orders/my
@bp.get("/my")
@login_required
def my_orders():
    user = current_user()
    page = request.args.get("page", default=1, type=int)
    per = min(max(request.args.get("per_page", default=20, type=int), 1), 100)
    paged = (Order.query.filter_by(user_id=user.id)
             .order_by(Order.created_at.desc(), Order.id.desc())
             .paginate(page=page, per_page=per, error_out=False))
    return ok("orders", {
        "page": paged.page,
        "per_page": per,
        "total": paged.total,
        "items": [o.as_api() for o in paged.items],
    })


# GET /api/orders/<id>
@bp.get("/<int:order_id>")
@login_required
def get_order(order_id: int):
    user = current_user()
    o = _get_order(order_id)
    if o.user_id != user.id and user.role != "admin":
        return err("Forbidden", 403)
    return ok("order", o.as_api())


# PATCH /api/orders/<id>/status  {status}
@bp.patch("/<int:order_id>/status")
@role_required("admin")
def update_status(order_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    if status not in ORDER_STATUSES:
        return err(f"status must be one of: {', '.join(ORDER_STATUSES)}")

    o = _get_order(order_id)
    previous = o.status
    o.status = status
    db.session.commit()
    logger.info("order %s status %s -> %s", o.id, previous, status)

    if status == "delivered" and previous != "delivered":
        dispatch(send_order_delivered, o.id)
    return ok("Order status updated", o.as_api())
