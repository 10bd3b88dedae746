# storefront/model/cart.py
from __future__ import annotations
from sqlalchemy.sql import func
from ..extensions import db
from ..services.discount import LineItem


class Cart(db.Model):
    __tablename__ = "cart"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)

    # applied coupon by code; validated on read, usage claimed only at order placement
    applied_coupon_code = db.Column(db.String(64), nullable=True)
    coupon_applied_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    items = db.relationship(
        "CartItem",
        backref="cart",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartItem.id.asc()",
    )

    def line_items(self) -> list[LineItem]:
        return [i.as_line_item() for i in self.items]

    def clear_coupon(self):
        self.applied_coupon_code = None
        self.coupon_applied_at = None


class CartItem(db.Model):
    __tablename__ = "cart_item"
    __table_args__ = (
        db.CheckConstraint("qty > 0", name="ck_cart_item_qty_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("cart.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)

    qty = db.Column(db.Integer, nullable=False, default=1)
    price_at_add = db.Column(db.Float, nullable=False)  # snapshot of product price

    product = db.relationship("Product", lazy="joined")

    def unit_price(self) -> float:
        if self.price_at_add is not None:
            return self.price_at_add
        return self.product.price if self.product else 0.0

    def as_line_item(self) -> LineItem:
        p = self.product
        return LineItem(
            product_id=self.product_id,
            category=(p.category if p else None) or "",
            brand=(p.brand if p else None) or "",
            unit_price=self.unit_price(),
            quantity=int(self.qty or 0),
        )

    def as_api(self):
        p = self.product
        return {
            "id": self.id,
            "product_id": self.product_id,
            "qty": self.qty,
            "price_at_add": self.price_at_add,
            "line_total": round(float(self.unit_price()) * int(self.qty or 0), 2),
            "product": {
                "id": p.id,
                "title": p.title,
                "slug": p.slug,
                "price": p.price,
                "stock": p.stock,
                "category": p.category,
                "brand": p.brand,
            } if p else None,
        }
