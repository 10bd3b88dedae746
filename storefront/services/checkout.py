# storefront/services/checkout.py
"""
Cart summary and order placement.

Order of operations in :func:`place_order`:
  1) reject empty cart / missing address (no mutation)
  2) all-or-nothing stock check
  3) conditional stock decrement (``stock >= qty`` in the UPDATE itself)
  4) coupon re-resolved by code, re-validated, usage claimed conditionally
  5) totals, order snapshot and cart clear in one commit
  6) confirmation notification, fire-and-forget
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from flask import current_app
from sqlalchemy import update, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..model import Cart, Coupon, CouponUsage, Order, OrderItem, Product
from ..utils.dates import utcnow
from ..utils.errors import AddressRequiredError, EmptyCartError, InsufficientStockError
from ..utils.money import D, Money, as_number, round_whole
from .discount import (
    compute_eligible_subtotal,
    compute_subtotal,
    normalize_code,
    validate_coupon_for_user,
)
from .notifications import dispatch, send_order_confirmation

logger = logging.getLogger("storefront.orders")

SHIPPING_STANDARD = "standard"
SHIPPING_EXPRESS = "express"
DEFAULT_EXPRESS_FEE = 99


def normalize_shipping_method(method) -> str:
    return SHIPPING_EXPRESS if str(method or "").strip().lower() == SHIPPING_EXPRESS else SHIPPING_STANDARD


def shipping_cost_for(method, express_fee=DEFAULT_EXPRESS_FEE) -> Money:
    if normalize_shipping_method(method) == SHIPPING_EXPRESS:
        return D(express_fee)
    return Decimal("0")


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Money
    eligible_subtotal: Money
    discount: Money
    discounted_subtotal: Money
    tax: Money
    shipping_cost: Money
    total: Money

    def as_api(self):
        return {
            "subtotal": as_number(self.subtotal),
            "eligible_subtotal": as_number(self.eligible_subtotal),
            "discount": as_number(self.discount),
            "discounted_subtotal": as_number(self.discounted_subtotal),
            "tax": as_number(self.tax),
            "shipping_cost": as_number(self.shipping_cost),
            "total": as_number(self.total),
        }


def compute_totals(items, shipping_method=SHIPPING_STANDARD, tax_rate="0.05", discount=0,
                   eligible_subtotal=None, express_fee=DEFAULT_EXPRESS_FEE) -> OrderTotals:
    subtotal = compute_subtotal(items)
    discount = max(Decimal("0"), D(discount))
    discounted = max(Decimal("0"), subtotal - discount)
    tax = round_whole(discounted * D(tax_rate))
    shipping = shipping_cost_for(shipping_method, express_fee)
    return OrderTotals(
        subtotal=subtotal,
        eligible_subtotal=subtotal if eligible_subtotal is None else D(eligible_subtotal),
        discount=discount,
        discounted_subtotal=discounted,
        tax=tax,
        shipping_cost=shipping,
        total=discounted + tax + shipping,
    )


# ---- cart helpers ------------------------------------------------------------

def get_or_create_cart(user_id) -> Cart:
    cart = Cart.query.filter_by(user_id=user_id).first()
    if not cart:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.commit()
    return cart


def find_coupon(code) -> Coupon | None:
    code = normalize_code(code)
    if not code:
        return None
    return Coupon.query.filter_by(code=code).first()


def preview_cart(cart: Cart, user_id, now=None) -> dict:
    """Read-only cart summary; an applied coupon that no longer qualifies is reported, not removed."""
    items = cart.line_items()
    subtotal = compute_subtotal(items)
    discount = Decimal("0")
    coupon_info = None
    coupon_error = None

    if cart.applied_coupon_code:
        coupon = find_coupon(cart.applied_coupon_code)
        check = validate_coupon_for_user(coupon, items, user_id, now)
        if check.ok:
            discount = check.discount
            coupon_info = coupon.snapshot()
        else:
            coupon_error = check.reason

    return {
        "items": [i.as_api() for i in cart.items],
        "applied_coupon": coupon_info,
        "coupon_error": coupon_error,
        "subtotal": as_number(subtotal),
        "discount": as_number(discount),
        "discounted_subtotal": as_number(max(Decimal("0"), subtotal - discount)),
    }


# ---- stock / usage primitives ----------------------------------------------

def check_stock(cart_items):
    """Raise on the first item whose product cannot cover its quantity. No writes."""
    for ci in cart_items:
        p = ci.product
        if p is None or (p.stock or 0) < ci.qty:
            title = p.title if p is not None else f"product {ci.product_id}"
            raise InsufficientStockError(title, ci.product_id)


def reserve_stock(product_id, qty) -> bool:
    """Compare-and-swap decrement; False when the row no longer has ``qty`` units."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= qty)
        .values(stock=Product.stock - qty)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


class _UsageClaimLost(Exception):
    pass


def claim_coupon_usage(coupon: Coupon, user_id) -> bool:
    """
    Increment ``used_count`` and the user's usage row, each guarded by its limit.
    Runs in a savepoint so a lost race leaves neither counter touched.
    """
    try:
        with db.session.begin_nested():
            res = db.session.execute(
                update(Coupon)
                .where(
                    Coupon.id == coupon.id,
                    or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit),
                )
                .values(used_count=Coupon.used_count + 1)
                .execution_options(synchronize_session=False)
            )
            if res.rowcount != 1:
                raise _UsageClaimLost("usage limit")

            usage = CouponUsage.query.filter_by(coupon_id=coupon.id, user_id=user_id).first()
            if usage is None:
                if coupon.per_user_limit is not None and coupon.per_user_limit < 1:
                    raise _UsageClaimLost("per-user limit")
                db.session.add(CouponUsage(coupon_id=coupon.id, user_id=user_id, count=1))
                db.session.flush()
            else:
                stmt = update(CouponUsage).where(CouponUsage.id == usage.id)
                if coupon.per_user_limit is not None:
                    stmt = stmt.where(CouponUsage.count < coupon.per_user_limit)
                res = db.session.execute(
                    stmt.values(count=CouponUsage.count + 1).execution_options(synchronize_session=False)
                )
                if res.rowcount != 1:
                    raise _UsageClaimLost("per-user limit")
    except (_UsageClaimLost, IntegrityError) as e:
        logger.info("coupon %s claim lost for user %s: %s", coupon.code, user_id, e)
        return False
    return True


# ---- order placement ---------------------------------------------------------

def place_order(user, address, shipping_method=None, tax_rate=None, now=None) -> Order:
    cfg = current_app.config
    tax_rate = D(cfg.get("TAX_RATE", "0.05") if tax_rate is None else tax_rate)
    express_fee = cfg.get("EXPRESS_SHIPPING_FEE", DEFAULT_EXPRESS_FEE)
    method = normalize_shipping_method(shipping_method)

    address = address.strip() if isinstance(address, str) else address
    if not address:
        raise AddressRequiredError()

    cart = Cart.query.filter_by(user_id=user.id).first()
    if not cart or not cart.items:
        raise EmptyCartError()

    try:
        items = cart.line_items()
        check_stock(cart.items)

        for ci in cart.items:
            title = ci.product.title
            if not reserve_stock(ci.product_id, ci.qty):
                # lost a race after the pre-check; nothing is committed
                raise InsufficientStockError(title, ci.product_id)

        discount = Decimal("0")
        eligible = None
        snapshot = None
        if cart.applied_coupon_code:
            coupon = find_coupon(cart.applied_coupon_code)
            check = validate_coupon_for_user(coupon, items, user.id, now)
            if check.ok and claim_coupon_usage(coupon, user.id):
                discount = check.discount
                eligible = compute_eligible_subtotal(items, coupon)
                snapshot = coupon.snapshot(as_number(discount))
            else:
                # order still places, just without the discount
                logger.info("dropping coupon %s at checkout for user %s: %s",
                            cart.applied_coupon_code, user.id, check.reason or "claim lost")

        totals = compute_totals(items, method, tax_rate, discount, eligible, express_fee)

        order = Order(
            user_id=user.id,
            status="pending",
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            shipping_method=method,
            shipping_cost=totals.shipping_cost,
            total_amount=totals.total,
            address=address if isinstance(address, str) else str(address),
            payment_method="COD",
            applied_coupon=snapshot,
            created_at=now or utcnow(),
        )
        for ci in cart.items:
            order.items.append(OrderItem(
                product_id=ci.product_id,
                title=ci.product.title,
                qty=ci.qty,
                price=D(ci.unit_price()),
            ))
        db.session.add(order)

        cart.items.clear()
        cart.clear_coupon()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("order %s placed by user %s total=%s", order.id, user.id, order.total_amount)
    dispatch(send_order_confirmation, order.id)
    return order
