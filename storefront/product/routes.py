# storefront/product/routes.py
import logging
import math

from flask import request, url_for, current_app, send_file
from sqlalchemy import or_, desc, asc
from sqlalchemy.exc import IntegrityError

from . import bp
from ..extensions import db
from ..model import CartItem, Category, Product, SponsoredPlacement
from ..model.category import slugify
from ..model.product import PRODUCT_STATUSES
from ..services.catalog import XLSX_MIMETYPE, ensure_category, read_products_xlsx, write_products_xlsx
from ..services.impressions import record_impressions_for_listing
from ..services.listing import blend, select_placements, target_sponsored_count
from ..utils.api import ok, err
from ..utils.decorators import current_user, optional_viewer, role_at_least, role_required
from ..utils.errors import NotFoundError
from ..utils.net import get_client_ip, get_user_agent, session_key

logger = logging.getLogger("storefront.products")

SORT_FIELDS = {
    "created_at": Product.created_at,
    "createdAt": Product.created_at,
    "price": Product.price,
    "title": Product.title,
    "stock": Product.stock,
    "id": Product.id,
}


# ---------- helpers ----------
def _ep(name: str) -> str:
    return f"{bp.name}.{name}"


def _parse_int(v, default=0):
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _parse_opt_float(v):
    if v is None:
        return None
    if isinstance(v, str) and v.strip() == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _arg(*names):
    for n in names:
        v = request.args.get(n)
        if v is not None:
            return v
    return None


def _sort_products(query, sort):
    field, _, direction = (sort or "created_at:desc").partition(":")
    col = SORT_FIELDS.get(field.strip(), Product.created_at)
    order = asc if direction.strip().lower() == "asc" else desc
    return query.order_by(order(col), order(Product.id))


def _resolve_category(value):
    """Category filter value (name or slug) -> (product category name, target slug)."""
    value = (value or "").strip()
    if not value:
        return None, None
    cat = Category.query.filter(or_(Category.slug == value.lower(), Category.name.ilike(value))).first()
    if cat:
        return cat.name, cat.slug
    return value, slugify(value)


def _listing_filters(category_name, min_price, max_price):
    filters = [Product.status == "active"]
    if category_name:
        filters.append(Product.category == category_name)
    if min_price is not None:
        filters.append(Product.price >= min_price)
    if max_price is not None:
        filters.append(Product.price <= max_price)
    return filters


def _sponsored_candidates(filters, target_slug, quota):
    """Live placements whose product also passes the organic filter, as listing dicts."""
    placements = SponsoredPlacement.query.filter(SponsoredPlacement.status == "approved").all()
    ordered = select_placements(placements, target_slug=target_slug)
    if not ordered:
        return []

    eligible_ids = {
        pid for (pid,) in db.session.query(Product.id)
        .filter(Product.id.in_([p.product_id for p in ordered]), *filters)
    }
    out = []
    for pl in ordered:
        if pl.product_id not in eligible_ids:
            continue
        item = pl.product.as_api()
        item.update(is_sponsored=True, placement_id=pl.id, targeted=bool(pl.target_category_slug))
        out.append(item)
        if len(out) >= quota:
            break
    return out


def _owner_or_admin(product, user):
    return user.role == "admin" or (product.owner_id is not None and product.owner_id == user.id)


def _get_product(pid) -> Product:
    product = db.session.get(Product, pid)
    if not product:
        raise NotFoundError("Product not found")
    return product


def _apply_fields(product, data):
    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            return "title is required"
        product.title = title
    if "price" in data:
        price = _parse_opt_float(data.get("price"))
        if price is None or price < 0:
            return "price must be a number >= 0"
        product.price = price
    if "stock" in data:
        stock = _parse_int(data.get("stock"), None)
        if stock is None or stock < 0:
            return "stock must be an integer >= 0"
        product.stock = stock
    if "status" in data:
        status = (data.get("status") or "").strip().lower()
        if status not in PRODUCT_STATUSES:
            return f"status must be one of: {', '.join(PRODUCT_STATUSES)}"
        product.status = status
    if "category" in data:
        cat = ensure_category(data.get("category"))
        product.category = cat.name if cat else None
    if "description" in data:
        product.description = data.get("description") or ""
    for field in ("brand", "sku", "slug"):
        if field in data:
            setattr(product, field, data.get(field) or None)
    product.ensure_slug()
    return None


# ---------- routes ----------
# GET /api/products
@bp.get("")
def list_products():
    """
    Query params:
      category            -> category name or slug
      minPrice/min_price  -> float
      maxPrice/max_price  -> float
      q                   -> substring match on title/description/brand (disables sponsored items)
      sort                -> field:dir, e.g. price:asc (default created_at:desc)
      page                -> default 1
      limit               -> default 12 (cap MAX_PAGE_SIZE)
    """
    cfg = current_app.config
    q = (request.args.get("q") or "").strip()
    category_name, target_slug = _resolve_category(request.args.get("category"))
    min_price = _parse_opt_float(_arg("minPrice", "min_price"))
    max_price = _parse_opt_float(_arg("maxPrice", "max_price"))
    page = max(_parse_int(request.args.get("page"), 1), 1)
    limit = _parse_int(request.args.get("limit"), cfg.get("DEFAULT_PAGE_SIZE", 12))
    limit = max(1, min(limit, cfg.get("MAX_PAGE_SIZE", 100)))

    filters = _listing_filters(category_name, min_price, max_price)

    ratio = 0 if q else cfg.get("SPONSORED_RATIO", 0.25)
    quota = target_sponsored_count(limit, ratio)
    sponsored = _sponsored_candidates(filters, target_slug, quota) if quota else []

    # sponsored products take their slots on every page, so the organic pages
    # shrink by that many rows and skip those products
    sponsored_count = len(sponsored)
    per_page = limit - sponsored_count
    query = Product.query.filter(*filters)
    if sponsored:
        query = query.filter(Product.id.notin_([s["id"] for s in sponsored]))
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.title.ilike(like), Product.description.ilike(like), Product.brand.ilike(like)))

    pagination = _sort_products(query, request.args.get("sort")).paginate(page=page, per_page=per_page, error_out=False)
    organic = [dict(p.as_api(), is_sponsored=False) for p in pagination.items]

    pages = math.ceil(pagination.total / per_page)
    if sponsored:
        pages = max(pages, 1)
        if page > pages:
            sponsored = []
    items = blend(organic, sponsored, ratio, limit, category_scoped=bool(category_name))

    if sponsored:
        viewer = optional_viewer()
        record_impressions_for_listing(
            items,
            session_key(),
            user_id=viewer.id if viewer else None,
            ip=get_client_ip(),
            ua=get_user_agent(),
        )

    return ok("Products fetched", {
        "items": items,
        "page": page,
        "limit": limit,
        "total": pagination.total + sponsored_count,
        "pages": pages,
    })


# GET /api/products/<id>
@bp.get("/<int:pid>")
def get_product(pid):
    return ok("Product fetched", _get_product(pid).as_api())


# POST /api/products
@bp.post("")
@role_at_least("seller", message="Only sellers and admins can create products")
def create_product():
    user = current_user()
    data = request.get_json(silent=True) or {}
    if not (data.get("title") or "").strip():
        return err("title is required")
    if "price" not in data:
        return err("price is required")

    product = Product(owner_id=user.id, status="active", stock=0, description="")
    problem = _apply_fields(product, data)
    if problem:
        return err(problem)

    try:
        db.session.add(product)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return err("Duplicate or invalid data", 409)

    logger.info("product %s created by user %s", product.id, user.id)
    resp = ok("Product created", product.as_api(), status=201)
    resp.headers["Location"] = url_for(_ep("get_product"), pid=product.id, _external=True)
    return resp


# PUT /api/products/<id>
@bp.put("/<int:pid>")
@role_at_least("seller")
def update_product(pid):
    user = current_user()
    product = _get_product(pid)
    if not _owner_or_admin(product, user):
        return err("Forbidden", 403)

    data = request.get_json(silent=True) or {}
    problem = _apply_fields(product, data)
    if problem:
        db.session.rollback()
        return err(problem)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return err("Duplicate or invalid data", 409)
    return ok("Product updated", product.as_api())


# DELETE /api/products/<id>
@bp.delete("/<int:pid>")
@role_at_least("seller")
def delete_product(pid):
    user = current_user()
    product = _get_product(pid)
    if not _owner_or_admin(product, user):
        return err("Forbidden", 403)

    SponsoredPlacement.query.filter_by(product_id=pid).delete(synchronize_session=False)
    CartItem.query.filter_by(product_id=pid).delete(synchronize_session=False)
    db.session.delete(product)
    db.session.commit()
    logger.info("product %s deleted by user %s", pid, user.id)
    return ok(f"Product {pid} deleted", {"id": pid})


# GET /api/products/export
@bp.get("/export")
@role_required("admin")
def export_products():
    """Export all products as an Excel file."""
    output = write_products_xlsx()
    return send_file(
        output,
        as_attachment=True,
        download_name="products_export.xlsx",
        mimetype=XLSX_MIMETYPE,
    )


# POST /api/products/import  (multipart, field "file")
@bp.post("/import")
@role_required("admin")
def import_products():
    """Import products from an uploaded .xlsx file."""
    if "file" not in request.files:
        return err("No file part")
    file = request.files["file"]
    if file.filename == "":
        return err("No selected file")
    if not file.filename.lower().endswith(".xlsx"):
        return err("Only .xlsx files are allowed")

    result = read_products_xlsx(file, owner_id=current_user().id)
    return ok("Products imported successfully", result)
