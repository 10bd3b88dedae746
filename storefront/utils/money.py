# storefront/utils/money.py

from decimal import Decimal, ROUND_HALF_UP

Money = Decimal

WHOLE = Decimal("1")


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_whole(x: Money) -> Money:
    """Round half up to a whole currency unit (2.5 -> 3, 2.4 -> 2)."""
    return D(x).quantize(WHOLE, rounding=ROUND_HALF_UP)


def format_amount(x) -> str:
    """Render an amount without trailing zeros: 500.0 -> "500", 499.50 -> "499.5"."""
    d = D(x)
    if d == d.to_integral_value():
        return str(int(d))
    return format(d.normalize(), "f")


def as_number(x):
    """JSON-friendly number for API payloads."""
    d = D(x)
    return int(d) if d == d.to_integral_value() else float(d)
