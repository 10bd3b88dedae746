# ------ storefront/model/__init__.py ------

from .user import User, RefreshToken
from .category import Category
from .product import Product
from .cart import Cart, CartItem
from .coupon import Coupon, CouponUsage
from .order import Order, OrderItem
from .sponsored import SponsoredPlacement
from .analytics import AnalyticsEvent
from .notification import Notification

__all__ = [
    "User",
    "RefreshToken",
    "Category",
    "Product",
    "Cart",
    "CartItem",
    "Coupon",
    "CouponUsage",
    "Order",
    "OrderItem",
    "SponsoredPlacement",
    "AnalyticsEvent",
    "Notification",
]
