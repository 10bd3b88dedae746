# storefront/services/coupon_service.py
"""Admin coupon payload parsing and persistence."""
import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..model import Coupon
from ..model.coupon import COUPON_TYPES
from ..utils.dates import parse_iso8601
from ..utils.errors import StorefrontError
from .discount import normalize_code

logger = logging.getLogger("storefront.coupons")

DUPLICATE_CODE = "Code already exists"


def norm_list(value):
    """Accept a list or a comma separated string; drop blanks. None stays None."""
    if value is None:
        return None
    items = value if isinstance(value, (list, tuple)) else str(value).split(",")
    return [str(s).strip() for s in items if str(s).strip()]


def _opt_float(data, key):
    v = data.get(key)
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        raise StorefrontError(f"{key} must be numeric")


def _opt_int(data, key):
    v = data.get(key)
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    try:
        n = int(v)
    except (TypeError, ValueError):
        raise StorefrontError(f"{key} must be an integer")
    if n < 0:
        raise StorefrontError(f"{key} must be >= 0")
    return n


def _opt_datetime(data, key):
    raw = data.get(key)
    if not raw:
        return None
    dt = parse_iso8601(raw)
    if dt is None:
        raise StorefrontError(f"Invalid datetime format for {key}")
    return dt


def _as_bool(v):
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


def coupon_fields(data: dict, partial=False) -> dict:
    """
    Validated column values from an admin payload. ``type`` is accepted as an
    alias of ``ctype``. With ``partial`` only keys present in ``data`` are returned.
    """
    data = dict(data or {})
    if "type" in data and "ctype" not in data:
        data["ctype"] = data.pop("type")

    fields = {}

    if not partial or "code" in data:
        code = normalize_code(data.get("code"))
        if not code:
            raise StorefrontError("code is required")
        fields["code"] = code

    if not partial or "ctype" in data:
        ctype = str(data.get("ctype") or "percent").strip().lower()
        if ctype not in COUPON_TYPES:
            raise StorefrontError("ctype must be 'percent' or 'fixed'")
        fields["ctype"] = ctype

    if not partial or "value" in data:
        value = _opt_float(data, "value")
        if value is None or value <= 0:
            raise StorefrontError("value must be > 0")
        fields["value"] = value

    if "active" in data:
        fields["active"] = _as_bool(data.get("active"))
    elif not partial:
        fields["active"] = True

    for key in ("min_order_value", "max_discount"):
        if not partial or key in data:
            fields[key] = _opt_float(data, key)
    for key in ("usage_limit", "per_user_limit"):
        if not partial or key in data:
            fields[key] = _opt_int(data, key)
    for key in ("starts_at", "expires_at"):
        if not partial or key in data:
            fields[key] = _opt_datetime(data, key)
    for key in ("allowed_categories", "allowed_brands"):
        if not partial or key in data:
            fields[key] = norm_list(data.get(key)) or []
    if not partial or "description" in data:
        fields["description"] = (data.get("description") or None)

    starts = fields.get("starts_at")
    ends = fields.get("expires_at")
    if starts and ends and ends < starts:
        raise StorefrontError("expires_at must be after starts_at")
    return fields


def _code_taken(code, exclude_id=None):
    q = Coupon.query.filter(Coupon.code == code)
    if exclude_id is not None:
        q = q.filter(Coupon.id != exclude_id)
    return db.session.query(q.exists()).scalar()


def _commit_or_duplicate():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise StorefrontError(DUPLICATE_CODE)


def create_coupon(data: dict) -> Coupon:
    fields = coupon_fields(data)
    if _code_taken(fields["code"]):
        raise StorefrontError(DUPLICATE_CODE)
    coupon = Coupon(**fields)
    db.session.add(coupon)
    _commit_or_duplicate()
    logger.info("coupon %s created", coupon.code)
    return coupon


def update_coupon(coupon: Coupon, data: dict) -> Coupon:
    fields = coupon_fields(data, partial=True)
    if "code" in fields and _code_taken(fields["code"], exclude_id=coupon.id):
        raise StorefrontError(DUPLICATE_CODE)
    starts = fields.get("starts_at", coupon.starts_at)
    ends = fields.get("expires_at", coupon.expires_at)
    if starts and ends and ends < starts:
        raise StorefrontError("expires_at must be after starts_at")
    for key, value in fields.items():
        setattr(coupon, key, value)
    _commit_or_duplicate()
    logger.info("coupon %s updated", coupon.code)
    return coupon
