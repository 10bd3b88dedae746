# storefront/services/catalog.py
"""Spreadsheet import/export of the product catalogue (pandas + openpyxl) and sample data."""
import logging
from io import BytesIO

import pandas as pd

from ..extensions import db
from ..model import Category, Product
from ..model.category import slugify
from ..model.product import PRODUCT_STATUSES
from ..utils.errors import StorefrontError

logger = logging.getLogger("storefront.catalog")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# spreadsheet header -> Product attribute
COLUMNS = {
    "ID": "id",
    "Title": "title",
    "Slug": "slug",
    "SKU": "sku",
    "Price": "price",
    "Stock": "stock",
    "Category": "category",
    "Brand": "brand",
    "Status": "status",
    "Description": "description",
}
REQUIRED_COLUMNS = ("Title", "Price", "Stock")

SAMPLE_PRODUCTS = [
    {"title": "Cotton Crew T-Shirt", "sku": "TS-001", "price": 499, "stock": 120, "category": "Apparel", "brand": "Basics"},
    {"title": "Slim Fit Jeans", "sku": "JN-002", "price": 1499, "stock": 60, "category": "Apparel", "brand": "Denimco"},
    {"title": "Running Shoes", "sku": "SH-003", "price": 2999, "stock": 40, "category": "Footwear", "brand": "Stride"},
    {"title": "Leather Sandals", "sku": "SH-004", "price": 899, "stock": 75, "category": "Footwear", "brand": "Stride"},
    {"title": "Wireless Earbuds", "sku": "EL-005", "price": 1999, "stock": 50, "category": "Electronics", "brand": "Sonix"},
    {"title": "USB-C Charger 30W", "sku": "EL-006", "price": 799, "stock": 200, "category": "Electronics", "brand": "Voltix"},
    {"title": "Steel Water Bottle", "sku": "HM-007", "price": 349, "stock": 300, "category": "Home", "brand": "Hydra"},
    {"title": "Ceramic Mug Set", "sku": "HM-008", "price": 599, "stock": 80, "category": "Home", "brand": "Kiln"},
    {"title": "Yoga Mat", "sku": "SP-009", "price": 999, "stock": 45, "category": "Sports", "brand": "Flexa"},
    {"title": "Cricket Ball", "sku": "SP-010", "price": 299, "stock": 150, "category": "Sports", "brand": "Willow"},
]


def ensure_category(name):
    name = (name or "").strip()
    if not name:
        return None
    cat = Category.query.filter(Category.name.ilike(name)).first()
    if not cat:
        cat = Category(name=name, slug=slugify(name), active=True)
        db.session.add(cat)
        db.session.flush()
    return cat


def products_frame(query=None) -> pd.DataFrame:
    products = (query or Product.query.order_by(Product.id.asc())).all()
    rows = [{header: getattr(p, attr) for header, attr in COLUMNS.items()} for p in products]
    return pd.DataFrame(rows, columns=list(COLUMNS))


def write_products_xlsx(target=None):
    """Write the catalogue to ``target`` (path or file object); returns an in-memory buffer when omitted."""
    df = products_frame()
    output = target if target is not None else BytesIO()
    df.to_excel(output, index=False)
    if target is None:
        output.seek(0)
    return output


def _cell(row, header, default=None):
    if header not in row.index:
        return default
    value = row[header]
    if pd.isnull(value):
        return default
    if isinstance(value, str):
        value = value.strip()
        return value if value != "" else default
    return value


def import_products_frame(df: pd.DataFrame, owner_id=None) -> dict:
    """
    Upsert rows by SKU (or ID when present). Validates every row before
    writing anything; one commit for the whole sheet.
    """
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise StorefrontError(f"Missing required columns: {', '.join(missing)}")

    created = updated = 0
    try:
        for idx, row in df.iterrows():
            line = idx + 2  # header is row 1
            title = _cell(row, "Title")
            if not title:
                raise StorefrontError(f"Row {line}: Title is required")
            try:
                price = float(_cell(row, "Price", 0))
                stock = int(_cell(row, "Stock", 0))
            except (TypeError, ValueError):
                raise StorefrontError(f"Row {line}: Price and Stock must be numeric")
            if price < 0 or stock < 0:
                raise StorefrontError(f"Row {line}: Price and Stock must be >= 0")
            status = str(_cell(row, "Status", "active")).lower()
            if status not in PRODUCT_STATUSES:
                raise StorefrontError(f"Row {line}: invalid status {status}")

            cat = ensure_category(_cell(row, "Category"))

            product = None
            pid = _cell(row, "ID")
            sku = _cell(row, "SKU")
            if pid is not None:
                product = db.session.get(Product, int(pid))
            if product is None and sku:
                product = Product.query.filter_by(sku=str(sku)).first()

            if product is None:
                product = Product(owner_id=owner_id)
                created += 1
            else:
                updated += 1

            product.title = str(title)
            product.price = price
            product.stock = stock
            product.status = status
            product.sku = str(sku) if sku is not None else product.sku
            product.brand = _cell(row, "Brand", product.brand)
            product.description = _cell(row, "Description", product.description or "")
            product.category = cat.name if cat else product.category
            slug = _cell(row, "Slug")
            if slug:
                product.slug = str(slug)
            product.ensure_slug()
            db.session.add(product)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("imported products: %s created, %s updated", created, updated)
    return {"created": created, "updated": updated}


def read_products_xlsx(source, owner_id=None) -> dict:
    try:
        df = pd.read_excel(source)
    except ValueError as e:
        raise StorefrontError(f"Unreadable spreadsheet: {e}")
    return import_products_frame(df, owner_id=owner_id)


def seed_sample_products(owner_id=None) -> int:
    added = 0
    for data in SAMPLE_PRODUCTS:
        if Product.query.filter_by(sku=data["sku"]).first():
            continue
        ensure_category(data["category"])
        p = Product(owner_id=owner_id, status="active", description="", **data)
        p.ensure_slug()
        db.session.add(p)
        added += 1
    db.session.commit()
    return added
