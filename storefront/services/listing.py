# storefront/services/listing.py
"""
Sponsored / organic listing blend.

``blend`` is pure: it takes an organic page (product dicts with an ``id``)
and sponsored product dicts (already ordered, targeted ones first) and
returns at most ``limit`` items.
"""
from __future__ import annotations

import math
from datetime import datetime

from ..utils.dates import utcnow

MAX_SPONSORED_RATIO = 0.5
MIN_SLOT_PERIOD = 2


def clamp_ratio(ratio) -> float:
    try:
        r = float(ratio or 0)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(r):
        return 0.0
    return max(0.0, min(r, MAX_SPONSORED_RATIO))


def target_sponsored_count(limit, ratio) -> int:
    return int(math.floor(int(limit) * clamp_ratio(ratio)))


def slot_period(ratio) -> int:
    """Every ``slot_period``-th position is sponsored: 0.25 -> 4, 0.5 -> 2."""
    r = clamp_ratio(ratio)
    if r <= 0:
        return 0
    return max(MIN_SLOT_PERIOD, int(math.floor(1 / r + 0.5)))


def placement_is_live(placement, now=None) -> bool:
    now = now or utcnow()
    if placement.status != "approved":
        return False
    if placement.start_at and now < placement.start_at:
        return False
    if placement.end_at and now > placement.end_at:
        return False
    return True


def _placement_sort_key(p):
    return (p.priority or 0, p.updated_at or datetime.min, p.created_at or datetime.min)


def select_placements(placements, target_slug=None, now=None) -> list:
    """
    Live placements in display order: targeted to ``target_slug`` first,
    then general (untargeted) ones. A product appears once; the first,
    highest-ranked placement wins.
    """
    live = [p for p in placements if placement_is_live(p, now)]
    targeted = []
    general = []
    for p in live:
        slug = (p.target_category_slug or "").strip()
        if not slug:
            general.append(p)
        elif target_slug and slug == target_slug:
            targeted.append(p)

    # priority desc, updated_at desc, created_at desc
    targeted.sort(key=_placement_sort_key, reverse=True)
    general.sort(key=_placement_sort_key, reverse=True)

    seen = set()
    ordered = []
    for p in targeted + general:
        if p.product_id in seen:
            continue
        seen.add(p.product_id)
        ordered.append(p)
    return ordered


def blend(organic, sponsored, ratio, limit, category_scoped=False) -> list:
    """
    Interleave sponsored items into an organic page.

    - at most ``floor(limit * ratio)`` sponsored items
    - a targeted item leads when the request is category-scoped
    - otherwise sponsored items sit at every ``slot_period(ratio)``-th position
    - once either list runs out the other fills the page up to ``limit``
    - organic copies of a shown sponsored product are dropped
    """
    limit = max(0, int(limit))
    quota = target_sponsored_count(limit, ratio)
    if quota <= 0 or not sponsored:
        return list(organic[:limit])

    ads = list(sponsored[:quota])
    shown = {ad.get("id") for ad in ads}
    pool = [p for p in organic if p.get("id") not in shown]
    period = slot_period(ratio)

    out = []
    if category_scoped and ads[0].get("targeted"):
        out.append(ads.pop(0))

    oi = 0
    while len(out) < limit and (ads or oi < len(pool)):
        sponsored_slot = (len(out) + 1) % period == 0
        if ads and (sponsored_slot or oi >= len(pool)):
            out.append(ads.pop(0))
        else:
            out.append(pool[oi])
            oi += 1
    return out
