# storefront/model/product.py
import uuid as _uuid

from sqlalchemy.sql import func
from ..extensions import db
from .category import slugify

PRODUCT_STATUSES = ("active", "blocked")


class Product(db.Model):
    __tablename__ = "product"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_product_stock_nonnegative"),
        db.CheckConstraint("price >= 0", name="ck_product_price_nonnegative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False, index=True)
    slug = db.Column(db.String(255), unique=True, index=True)
    description = db.Column(db.Text, default="")

    price = db.Column(db.Float, nullable=False, default=0.0)
    stock = db.Column(db.Integer, nullable=False, default=0)

    category = db.Column(db.String(120), index=True)  # category *name*
    brand = db.Column(db.String(120))
    sku = db.Column(db.String(64), index=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    owner_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def ensure_slug(self):
        if not self.slug:
            self.slug = f"{slugify(self.title)}-{_uuid.uuid4().hex[:6]}"

    def as_api(self):
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "description": self.description,
            "price": self.price,
            "stock": self.stock,
            "category": self.category,
            "brand": self.brand,
            "sku": self.sku,
            "status": self.status,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
