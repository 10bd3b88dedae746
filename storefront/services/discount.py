# storefront/services/discount.py
"""
Coupon eligibility and discount computation.

Shared by the cart (validate-only, ``POST /api/cart/apply-coupon``) and the
order pipeline (re-validation at commit time). Everything here is pure: it
reads a coupon and a list of :class:`LineItem` values and never touches usage
counters or the session.

A coupon is any object exposing the ``Coupon`` model attributes
(``active``, ``starts_at``, ``expires_at``, ``ctype``, ``value``,
``max_discount``, ``min_order_value``, ``usage_limit``, ``used_count``,
``per_user_limit``, ``allowed_categories``, ``allowed_brands``) and a
``uses_by(user_id)`` method.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..utils.dates import utcnow
from ..utils.money import D, Money, round_whole, format_amount

CURRENCY = "₹"

# user-facing reasons, displayed verbatim by clients
REASON_INVALID = "Invalid code"
REASON_INACTIVE = "Coupon inactive"
REASON_WINDOW = "Coupon not in active window"
REASON_USAGE_LIMIT = "Coupon usage limit reached"
REASON_PER_USER = "Per-user limit reached"
REASON_NO_ELIGIBLE = "No eligible items"


def min_order_reason(min_order_value) -> str:
    return f"Minimum order {CURRENCY}{format_amount(min_order_value)}"


@dataclass(frozen=True)
class LineItem:
    product_id: int
    category: str
    brand: str
    unit_price: float
    quantity: int

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError("quantity must be >= 1")
        if D(self.unit_price) < 0:
            raise ValueError("unit price must be >= 0")

    @property
    def line_total(self) -> Money:
        return D(self.unit_price) * self.quantity


@dataclass(frozen=True)
class CouponCheck:
    ok: bool
    discount: Money = Decimal("0")
    reason: str | None = None


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


def compute_subtotal(items) -> Money:
    return sum((i.line_total for i in items or ()), Decimal("0"))


def coupon_in_window(coupon, now=None) -> bool:
    now = now or utcnow()
    if coupon.starts_at and now < coupon.starts_at:
        return False
    if coupon.expires_at and now > coupon.expires_at:
        return False
    return True


def _scope(coupon):
    return list(coupon.allowed_categories or []), list(coupon.allowed_brands or [])


def has_scope(coupon) -> bool:
    cats, brands = _scope(coupon)
    return bool(cats or brands)


def is_item_eligible(item: LineItem, coupon) -> bool:
    cats, brands = _scope(coupon)
    if not cats and not brands:
        return True
    # inclusive OR; an absent list neither matches nor excludes
    cat_ok = bool(cats) and (item.category or "") in cats
    brand_ok = bool(brands) and (item.brand or "") in brands
    return cat_ok or brand_ok


def compute_eligible_subtotal(items, coupon) -> Money:
    if coupon is None:
        return Decimal("0")
    if not has_scope(coupon):
        return compute_subtotal(items)
    return sum((i.line_total for i in items or () if is_item_eligible(i, coupon)), Decimal("0"))


def compute_discount(coupon, items, now=None) -> Money:
    """Whole-unit discount a coupon grants on ``items``; 0 when it does not apply."""
    if coupon is None or not coupon.active:
        return Decimal("0")
    if not coupon_in_window(coupon, now):
        return Decimal("0")

    eligible = compute_eligible_subtotal(items, coupon)
    if eligible <= 0:
        return Decimal("0")

    ctype = (coupon.ctype or "").lower()
    if ctype == "percent":
        discount = round_whole(eligible * D(coupon.value) / Decimal("100"))
        if coupon.max_discount is not None:
            discount = min(discount, D(coupon.max_discount))
    elif ctype == "fixed":
        discount = round_whole(D(coupon.value))
    else:
        discount = Decimal("0")

    # never more than the eligible portion
    return max(Decimal("0"), min(discount, eligible))


def validate_coupon_for_user(coupon, items, user_id, now=None) -> CouponCheck:
    """
    Read-only eligibility check. Checks run in a fixed order and the first
    failure wins:

        exists -> active -> window -> minimum order (whole cart subtotal)
        -> global usage limit -> per-user limit -> discount > 0
    """
    if coupon is None:
        return CouponCheck(False, reason=REASON_INVALID)
    if not coupon.active:
        return CouponCheck(False, reason=REASON_INACTIVE)
    if not coupon_in_window(coupon, now):
        return CouponCheck(False, reason=REASON_WINDOW)

    subtotal = compute_subtotal(items)
    if coupon.min_order_value and subtotal < D(coupon.min_order_value):
        return CouponCheck(False, reason=min_order_reason(coupon.min_order_value))

    if coupon.usage_limit is not None and (coupon.used_count or 0) >= coupon.usage_limit:
        return CouponCheck(False, reason=REASON_USAGE_LIMIT)

    if coupon.per_user_limit is not None and coupon.uses_by(user_id) >= coupon.per_user_limit:
        return CouponCheck(False, reason=REASON_PER_USER)

    discount = compute_discount(coupon, items, now)
    if discount <= 0:
        return CouponCheck(False, reason=REASON_NO_ELIGIBLE)

    return CouponCheck(True, discount=discount)
