# storefront/services/placements.py
"""Admin management of sponsored placements."""
import logging

from sqlalchemy import or_

from ..extensions import db
from ..model import Product, SponsoredPlacement
from ..model.sponsored import PLACEMENT_STATUSES, SCOPE_HOLDING_STATUSES
from ..utils.dates import parse_iso8601
from ..utils.errors import PlacementConflictError, StorefrontError

logger = logging.getLogger("storefront.sponsored")

CONFLICT_MESSAGE = (
    "A sponsored placement already uses this priority for this target (category or none). "
    "Choose a different priority or update the existing placement."
)


def normalize_target(slug):
    slug = str(slug or "").strip().lower()
    return slug or None


def _priority(v):
    try:
        return int(v or 0)
    except (TypeError, ValueError):
        return 0


def find_conflict(priority, target_slug, exclude_id=None):
    """Another scope-holding placement with the same priority and target (or both untargeted)."""
    q = SponsoredPlacement.query.filter(
        SponsoredPlacement.priority == priority,
        SponsoredPlacement.status.in_(SCOPE_HOLDING_STATUSES),
    )
    if target_slug:
        q = q.filter(SponsoredPlacement.target_category_slug == target_slug)
    else:
        q = q.filter(or_(SponsoredPlacement.target_category_slug.is_(None),
                         SponsoredPlacement.target_category_slug == ""))
    if exclude_id is not None:
        q = q.filter(SponsoredPlacement.id != exclude_id)
    return q.first()


def _status(v):
    status = str(v or "").strip().lower()
    if status not in PLACEMENT_STATUSES:
        raise StorefrontError(f"status must be one of: {', '.join(PLACEMENT_STATUSES)}")
    return status


def _datetime(data, key):
    raw = data.get(key)
    if not raw:
        return None
    dt = parse_iso8601(raw)
    if dt is None:
        raise StorefrontError(f"Invalid datetime format for {key}")
    return dt


def create_placement(data: dict, created_by=None) -> SponsoredPlacement:
    try:
        product_id = int(data.get("product_id"))
    except (TypeError, ValueError):
        raise StorefrontError("product_id required")
    product = db.session.get(Product, product_id)
    if not product:
        raise StorefrontError("Invalid product_id")

    priority = _priority(data.get("priority"))
    status = _status(data.get("status") or "approved")
    target = normalize_target(data.get("target_category_slug"))

    if status in SCOPE_HOLDING_STATUSES and find_conflict(priority, target):
        raise PlacementConflictError(CONFLICT_MESSAGE)

    pl = SponsoredPlacement(
        product_id=product.id,
        seller_id=product.owner_id,
        status=status,
        start_at=_datetime(data, "start_at"),
        end_at=_datetime(data, "end_at"),
        priority=priority,
        target_category_slug=target,
        notes=data.get("notes"),
        created_by=created_by,
    )
    db.session.add(pl)
    db.session.commit()
    logger.info("placement %s created for product %s (priority %s, target %s)",
                pl.id, product.id, priority, target or "none")
    return pl


def update_placement(pl: SponsoredPlacement, data: dict) -> SponsoredPlacement:
    if "status" in data:
        pl.status = _status(data.get("status"))
    if "start_at" in data:
        pl.start_at = _datetime(data, "start_at")
    if "end_at" in data:
        pl.end_at = _datetime(data, "end_at")
    if "priority" in data:
        pl.priority = _priority(data.get("priority"))
    if "notes" in data:
        pl.notes = data.get("notes")
    if "target_category_slug" in data:
        pl.target_category_slug = normalize_target(data.get("target_category_slug"))

    if pl.status in SCOPE_HOLDING_STATUSES:
        with db.session.no_autoflush:
            clash = find_conflict(pl.priority, pl.target_category_slug, exclude_id=pl.id)
        if clash:
            db.session.rollback()
            raise PlacementConflictError(CONFLICT_MESSAGE)

    db.session.commit()
    logger.info("placement %s updated: status=%s priority=%s", pl.id, pl.status, pl.priority)
    return pl
