# storefront/services/impressions.py
"""Sponsored impression / click counters, at most once per session, UTC day and placement."""
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..model import AnalyticsEvent, SponsoredPlacement
from ..utils.dates import utcnow, ymd_utc

logger = logging.getLogger("storefront.sponsored")

IMPRESSION = "sponsored_impression"
CLICK = "sponsored_click"

_COUNTERS = {
    IMPRESSION: SponsoredPlacement.impressions,
    CLICK: SponsoredPlacement.clicks,
}


def already_recorded(event, placement_id, session_id, ymd) -> bool:
    return AnalyticsEvent.query.filter_by(
        session_id=session_id, event=event, ymd=ymd, placement_id=placement_id
    ).first() is not None


def _record(event, placement_id, session_id, user_id=None, ip="", ua="", product_id=None, now=None) -> bool:
    now = now or utcnow()
    ymd = ymd_utc(now)

    if already_recorded(event, placement_id, session_id, ymd):
        return False

    try:
        with db.session.begin_nested():
            db.session.add(AnalyticsEvent(
                session_id=session_id,
                user_id=user_id,
                event=event,
                product_id=product_id,
                placement_id=placement_id,
                meta={"placement_id": placement_id},
                ip=(ip or "")[:64],
                ua=(ua or "")[:255],
                ymd=ymd,
                created_at=now,
            ))
            db.session.flush()
    except IntegrityError:
        # a concurrent request for the same session/day got there first
        return False

    column = _COUNTERS[event]
    db.session.execute(
        update(SponsoredPlacement)
        .where(SponsoredPlacement.id == placement_id)
        .values({column: column + 1})
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return True


def record_impression(placement_id, session_id, user_id=None, ip="", ua="", product_id=None, now=None) -> bool:
    return _record(IMPRESSION, placement_id, session_id, user_id, ip, ua, product_id, now)


def record_click(placement_id, session_id, user_id=None, ip="", ua="", product_id=None, now=None) -> bool:
    return _record(CLICK, placement_id, session_id, user_id, ip, ua, product_id, now)


def record_impressions_for_listing(items, session_id, user_id=None, ip="", ua="", now=None) -> int:
    """Count impressions for every sponsored item on a rendered page. Never raises."""
    counted = 0
    for item in items:
        placement_id = item.get("placement_id")
        if not item.get("is_sponsored") or not placement_id:
            continue
        try:
            if record_impression(placement_id, session_id, user_id, ip, ua, item.get("id"), now):
                counted += 1
        except Exception:
            logger.warning("impression for placement %s not recorded", placement_id, exc_info=True)
            db.session.rollback()
    return counted
