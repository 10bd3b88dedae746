# tests/test_order_totals.py
from decimal import Decimal

from storefront.services.checkout import compute_totals, normalize_shipping_method, shipping_cost_for
from storefront.services.discount import LineItem


def cart_of_1000():
    return [
        LineItem(product_id=1, category="Apparel", brand="Basics", unit_price=250, quantity=2),
        LineItem(product_id=2, category="Footwear", brand="Stride", unit_price=500, quantity=1),
    ]


def test_express_without_coupon():
    totals = compute_totals(cart_of_1000(), "express", "0.05", express_fee=99)
    assert totals.subtotal == Decimal("1000")
    assert totals.discount == 0
    assert totals.tax == Decimal("50")
    assert totals.shipping_cost == Decimal("99")
    assert totals.total == Decimal("1149")


def test_express_with_ten_percent_coupon():
    totals = compute_totals(cart_of_1000(), "express", "0.05", discount=100, express_fee=99)
    assert totals.discounted_subtotal == Decimal("900")
    assert totals.tax == Decimal("45")
    assert totals.total == Decimal("1044")
    assert totals.as_api()["total"] == 1044


def test_standard_shipping_is_free():
    totals = compute_totals(cart_of_1000(), "standard", "0.05")
    assert totals.shipping_cost == 0
    assert totals.total == Decimal("1050")


def test_tax_rounds_half_up():
    items = [LineItem(product_id=1, category="", brand="", unit_price=10, quantity=1)]
    # 10 * 0.05 = 0.5
    assert compute_totals(items, "standard", "0.05").tax == Decimal("1")


def test_discount_larger_than_subtotal_floors_at_zero():
    totals = compute_totals(cart_of_1000(), "standard", "0.05", discount=5000)
    assert totals.discounted_subtotal == 0
    assert totals.tax == 0
    assert totals.total == 0


def test_unknown_shipping_methods_are_standard():
    assert normalize_shipping_method("EXPRESS") == "express"
    assert normalize_shipping_method("overnight") == "standard"
    assert normalize_shipping_method(None) == "standard"
    assert shipping_cost_for("express") == Decimal("99")
    assert shipping_cost_for("pigeon") == 0
