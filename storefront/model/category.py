# --- storefront/model/category.py ---
import re

from ..extensions import db


def slugify(text):
    text = (text or "").strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


class Category(db.Model):
    __tablename__ = "category"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    slug = db.Column(db.String(140), nullable=False, unique=True, index=True)
    active = db.Column(db.Boolean, default=True, nullable=False)

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "active": self.active,
        }
