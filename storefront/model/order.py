# storefront/model/order.py
from ..extensions import db
from ..utils.dates import utcnow
from ..utils.money import as_number

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    status = db.Column(db.String(20), default="pending", index=True)

    # Money snapshot (server-computed)
    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False)
    shipping_method = db.Column(db.String(16), nullable=False, default="standard")
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    address = db.Column(db.Text, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False, default="COD")

    # {code, type, value, discount_amount} when a coupon was claimed
    applied_coupon = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )

    def as_api(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "items": [i.as_api() for i in self.items],
            "subtotal": as_number(self.subtotal),
            "discount": as_number(self.discount),
            "tax": as_number(self.tax),
            "shipping_method": self.shipping_method,
            "shipping_cost": as_number(self.shipping_cost),
            "total_amount": as_number(self.total_amount),
            "address": self.address,
            "payment_method": self.payment_method,
            "applied_coupon": self.applied_coupon,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, index=True)
    title = db.Column(db.String(255))
    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)  # frozen unit price

    def as_api(self):
        return {
            "product_id": self.product_id,
            "title": self.title,
            "qty": self.qty,
            "price": as_number(self.price),
            "line_total": as_number((self.price or 0) * (self.qty or 0)),
        }
