# --- storefront/model/coupon.py ---

from ..extensions import db
from sqlalchemy.sql import func

COUPON_TYPES = ("percent", "fixed")


class Coupon(db.Model):
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)  # stored uppercase

    # "percent" or "fixed"
    ctype = db.Column(db.String(16), nullable=False, default="percent")
    value = db.Column(db.Float, nullable=False, default=0.0)

    active = db.Column(db.Boolean, default=True, index=True)

    # Optional constraints
    starts_at = db.Column(db.DateTime, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=True)
    min_order_value = db.Column(db.Float, nullable=True)   # total cart subtotal must reach this
    max_discount = db.Column(db.Float, nullable=True)      # cap for percent coupons
    usage_limit = db.Column(db.Integer, nullable=True)     # global cap
    per_user_limit = db.Column(db.Integer, nullable=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)

    # Scope: empty/None on both means every item is eligible
    allowed_categories = db.Column(db.JSON, nullable=True)
    allowed_brands = db.Column(db.JSON, nullable=True)

    description = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    usages = db.relationship(
        "CouponUsage",
        back_populates="coupon",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def uses_by(self, user_id) -> int:
        if user_id is None:
            return 0
        return next((u.count or 0 for u in self.usages if u.user_id == user_id), 0)

    def snapshot(self, discount_amount=None):
        snap = {"code": self.code, "type": self.ctype, "value": self.value}
        if discount_amount is not None:
            snap["discount_amount"] = discount_amount
        return snap

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "ctype": self.ctype,
            "value": self.value,
            "active": self.active,
            "starts_at": self.starts_at.isoformat() if self.starts_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "min_order_value": self.min_order_value,
            "max_discount": self.max_discount,
            "usage_limit": self.usage_limit,
            "per_user_limit": self.per_user_limit,
            "used_count": self.used_count or 0,
            "allowed_categories": self.allowed_categories or [],
            "allowed_brands": self.allowed_brands or [],
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class CouponUsage(db.Model):
    __tablename__ = "coupon_usage"
    __table_args__ = (
        db.UniqueConstraint("coupon_id", "user_id", name="uq_coupon_usage_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupon.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    count = db.Column(db.Integer, nullable=False, default=0)

    coupon = db.relationship("Coupon", back_populates="usages")
