# storefront/cart/routes.py
from __future__ import annotations

import logging

from flask import request

from . import bp
from ..extensions import db
from ..model import CartItem, Product
from ..services.checkout import find_coupon, get_or_create_cart, preview_cart
from ..services.discount import compute_subtotal, validate_coupon_for_user
from ..utils.api import ok, err
from ..utils.dates import utcnow
from ..utils.decorators import current_user, login_required
from ..utils.errors import InsufficientStockError, NotFoundError
from ..utils.money import as_number

logger = logging.getLogger("storefront.cart")


# ---- helpers ---------------------------------------------------------------

def _parse_qty(v):
    try:
        qty = int(v)
    except (TypeError, ValueError):
        return None
    return qty if qty >= 1 else None


def _find_item(cart, item_id) -> CartItem | None:
    return next((it for it in cart.items if it.id == item_id), None)


def _find_product_line(cart, product_id) -> CartItem | None:
    return next((it for it in cart.items if it.product_id == product_id), None)


def _summary(user):
    cart = get_or_create_cart(user.id)
    return preview_cart(cart, user.id)


# ---- routes ----------------------------------------------------------------

# GET /api/cart
@bp.get("")
@login_required
def get_cart():
    return ok("Cart fetched", _summary(current_user()))


# POST /api/cart  {product_id, qty}
@bp.post("")
@login_required
def add_item():
    user = current_user()
    data = request.get_json(silent=True) or {}
    qty = _parse_qty(data.get("qty", data.get("quantity", 1)))
    if qty is None:
        return err("Quantity must be at least 1")

    try:
        product_id = int(data.get("product_id"))
    except (TypeError, ValueError):
        return err("product_id is required")

    product = db.session.get(Product, product_id)
    if not product or product.status != "active":
        raise NotFoundError("Product not found")

    cart = get_or_create_cart(user.id)
    line = _find_product_line(cart, product.id)
    new_qty = qty + (line.qty if line else 0)
    if (product.stock or 0) < new_qty:
        raise InsufficientStockError(product.title, product.id)

    if line:
        line.qty = new_qty
    else:
        cart.items.append(CartItem(product_id=product.id, qty=qty, price_at_add=product.price))
    db.session.commit()
    return ok("Item added to cart", preview_cart(cart, user.id), status=200 if line else 201)


def _set_qty(cart, user, line):
    data = request.get_json(silent=True) or {}
    qty = _parse_qty(data.get("qty", data.get("quantity")))
    if qty is None:
        return err("Quantity must be at least 1")
    if not line:
        raise NotFoundError("Item not in cart")
    if line.product is None or (line.product.stock or 0) < qty:
        raise InsufficientStockError(line.product.title if line.product else f"product {line.product_id}", line.product_id)

    line.qty = qty
    db.session.commit()
    return ok("Cart updated", preview_cart(cart, user.id))


def _remove(cart, user, line):
    if not line:
        raise NotFoundError("Item not in cart")
    cart.items.remove(line)
    db.session.commit()
    return ok("Item removed", preview_cart(cart, user.id))


# PUT /api/cart/<item_id>  {qty}
@bp.put("/<int:item_id>")
@login_required
def update_item(item_id):
    user = current_user()
    cart = get_or_create_cart(user.id)
    return _set_qty(cart, user, _find_item(cart, item_id))


# PUT /api/cart/product/<product_id>  {qty}
@bp.put("/product/<int:product_id>")
@login_required
def update_product_line(product_id):
    user = current_user()
    cart = get_or_create_cart(user.id)
    return _set_qty(cart, user, _find_product_line(cart, product_id))


# DELETE /api/cart/<item_id>
@bp.delete("/<int:item_id>")
@login_required
def remove_item(item_id):
    user = current_user()
    cart = get_or_create_cart(user.id)
    return _remove(cart, user, _find_item(cart, item_id))


# DELETE /api/cart/product/<product_id>
@bp.delete("/product/<int:product_id>")
@login_required
def remove_product_line(product_id):
    user = current_user()
    cart = get_or_create_cart(user.id)
    return _remove(cart, user, _find_product_line(cart, product_id))


# POST /api/cart/apply-coupon  {code}
@bp.post("/apply-coupon")
@login_required
def apply_coupon():
    """Validate-only: usage counters are claimed when the order is placed."""
    user = current_user()
    data = request.get_json(silent=True) or {}
    cart = get_or_create_cart(user.id)
    items = cart.line_items()

    coupon = find_coupon(data.get("code"))
    check = validate_coupon_for_user(coupon, items, user.id)
    if not check.ok:
        logger.info("coupon %r rejected for user %s: %s", data.get("code"), user.id, check.reason)
        return err(check.reason, 400)

    cart.applied_coupon_code = coupon.code
    cart.coupon_applied_at = utcnow()
    db.session.commit()

    subtotal = compute_subtotal(items)
    return ok("Coupon applied", {
        "code": coupon.code,
        "subtotal": as_number(subtotal),
        "discount": as_number(check.discount),
        "discounted_subtotal": as_number(max(subtotal - check.discount, 0)),
    })


# POST /api/cart/remove-coupon
@bp.post("/remove-coupon")
@login_required
def remove_coupon():
    user = current_user()
    cart = get_or_create_cart(user.id)
    cart.clear_coupon()
    db.session.commit()
    return ok("Coupon removed", preview_cart(cart, user.id))
