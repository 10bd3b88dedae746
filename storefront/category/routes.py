# --- category/routes.py ---
from flask import request

from . import bp
from ..extensions import db
from ..model import Category, Product
from ..model.category import slugify
from ..utils.api import ok, err
from ..utils.decorators import role_required
from ..utils.errors import NotFoundError


def _get_category(cid) -> Category:
    c = db.session.get(Category, cid)
    if not c:
        raise NotFoundError("Category not found")
    return c


def _name_taken(name, exclude_id=None):
    q = Category.query.filter(Category.name.ilike(name) | (Category.slug == slugify(name)))
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    return q.first() is not None


# ------------------------ CATEGORY ROUTES ------------------------

@bp.get("")
def list_categories():
    """
    q        -> substring match on name
    all      -> include inactive categories when true
    """
    q = (request.args.get("q") or "").strip()
    qry = Category.query
    if (request.args.get("all") or "").lower() not in {"1", "true", "yes"}:
        qry = qry.filter(Category.active.is_(True))
    if q:
        qry = qry.filter(Category.name.ilike(f"%{q}%"))
    return ok("Categories fetched", [c.as_dict() for c in qry.order_by(Category.name.asc()).all()])


@bp.get("/<int:cid>")
def get_category(cid):
    return ok("Category fetched", _get_category(cid).as_dict())


@bp.post("")
@role_required("admin")
def create_category():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name or not slugify(name):
        return err("name required")
    if _name_taken(name):
        return err("category name already exists", 409)
    c = Category(name=name, slug=slugify(name), active=bool(data.get("active", True)))
    db.session.add(c)
    db.session.commit()
    return ok("Category created", c.as_dict(), status=201)


@bp.put("/<int:cid>")
@role_required("admin")
def update_category(cid):
    c = _get_category(cid)
    data = request.get_json(silent=True) or {}
    if "name" in data:
        new_name = (data.get("name") or "").strip()
        if not new_name or not slugify(new_name):
            return err("name cannot be empty")
        if _name_taken(new_name, exclude_id=c.id):
            return err("category name already exists", 409)
        if new_name != c.name:
            # products reference categories by name
            Product.query.filter_by(category=c.name).update({"category": new_name}, synchronize_session=False)
        c.name = new_name
        c.slug = slugify(new_name)
    if "active" in data:
        c.active = bool(data.get("active"))
    db.session.commit()
    return ok("Category updated", c.as_dict())


@bp.delete("/<int:cid>")
@role_required("admin")
def delete_category(cid):
    c = _get_category(cid)
    if Product.query.filter_by(category=c.name).first():
        return err("cannot delete: category has products", 409)
    db.session.delete(c)
    db.session.commit()
    return ok("deleted", {"id": cid})
