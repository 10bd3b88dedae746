# storefront/model/sponsored.py
from ..extensions import db
from ..utils.dates import utcnow

PLACEMENT_STATUSES = ("pending", "approved", "rejected", "paused")
# statuses that hold their (priority, target) scope
SCOPE_HOLDING_STATUSES = ("approved", "pending", "paused")


class SponsoredPlacement(db.Model):
    __tablename__ = "sponsored_placement"
    __table_args__ = (
        db.Index("ix_sponsored_live", "status", "start_at", "end_at", "priority"),
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="approved", index=True)
    start_at = db.Column(db.DateTime, nullable=True)
    end_at = db.Column(db.DateTime, nullable=True)
    priority = db.Column(db.Integer, nullable=False, default=0)

    # show preferentially on this category (lowercase slug); None = general
    target_category_slug = db.Column(db.String(140), nullable=True, index=True)

    impressions = db.Column(db.Integer, nullable=False, default=0)
    clicks = db.Column(db.Integer, nullable=False, default=0)

    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", lazy="joined")

    def as_api(self):
        impressions = self.impressions or 0
        clicks = self.clicks or 0
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {
                "id": self.product.id,
                "title": self.product.title,
                "brand": self.product.brand,
                "price": self.product.price,
                "stock": self.product.stock,
                "status": self.product.status,
            } if self.product else None,
            "seller_id": self.seller_id,
            "status": self.status,
            "start_at": self.start_at.isoformat() if self.start_at else None,
            "end_at": self.end_at.isoformat() if self.end_at else None,
            "priority": self.priority,
            "target_category_slug": self.target_category_slug,
            "impressions": impressions,
            "clicks": clicks,
            "ctr": round(clicks / impressions, 4) if impressions else 0.0,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
