# tests/test_listing.py
from datetime import datetime, timedelta
from types import SimpleNamespace

from storefront.services.listing import (
    blend,
    clamp_ratio,
    placement_is_live,
    select_placements,
    slot_period,
    target_sponsored_count,
)

NOW = datetime(2026, 5, 10, 9, 0, 0)


def organic(n, start=1):
    return [{"id": i, "is_sponsored": False} for i in range(start, start + n)]


def ads(*ids, targeted=False):
    return [{"id": i, "is_sponsored": True, "placement_id": 100 + i, "targeted": targeted} for i in ids]


def sponsored_positions(items):
    return [i for i, it in enumerate(items) if it["is_sponsored"]]


def placement(pid, product_id, priority=0, status="approved", target=None, updated=None, created=None, **kw):
    return SimpleNamespace(
        id=pid,
        product_id=product_id,
        priority=priority,
        status=status,
        target_category_slug=target,
        start_at=kw.get("start_at"),
        end_at=kw.get("end_at"),
        updated_at=updated or NOW - timedelta(days=1),
        created_at=created or NOW - timedelta(days=2),
    )


def test_quarter_ratio_puts_three_ads_on_every_fourth_slot():
    items = blend(organic(12), ads(901, 902, 903, 904, 905), 0.25, 12)
    assert len(items) == 12
    assert sponsored_positions(items) == [3, 7, 11]
    assert [items[i]["id"] for i in (3, 7, 11)] == [901, 902, 903]


def test_ratio_is_clamped_to_half():
    assert clamp_ratio(0.9) == 0.5
    assert clamp_ratio(-1) == 0.0
    assert clamp_ratio("abc") == 0.0
    items = blend(organic(12), ads(*range(900, 910)), 0.9, 12)
    assert sponsored_positions(items) == [1, 3, 5, 7, 9, 11]


def test_slot_period_and_quota():
    assert slot_period(0.25) == 4
    assert slot_period(0.5) == 2
    assert slot_period(0.3) == 3
    assert slot_period(0.4) == 3  # 2.5 rounds half up
    assert slot_period(0) == 0
    assert target_sponsored_count(12, 0.25) == 3
    assert target_sponsored_count(10, 0.25) == 2
    assert target_sponsored_count(12, 0) == 0


def test_zero_ratio_returns_organic_only():
    items = blend(organic(5), ads(901), 0, 12)
    assert items == organic(5)


def test_organic_duplicates_of_shown_ads_are_dropped():
    items = blend(organic(12), ads(2, 5, 7), 0.25, 12)
    ids = [it["id"] for it in items]
    assert len(ids) == len(set(ids))
    assert [it["id"] for it in items if it["is_sponsored"]] == [2, 5, 7]
    assert sorted(ids) == list(range(1, 13))


def test_targeted_ad_leads_a_category_page():
    items = blend(organic(12), ads(901, targeted=True) + ads(902, 903), 0.25, 12, category_scoped=True)
    assert items[0]["id"] == 901
    assert sponsored_positions(items) == [0, 3, 7]


def test_untargeted_ad_does_not_lead():
    items = blend(organic(12), ads(901, 902, 903), 0.25, 12, category_scoped=True)
    assert items[0]["is_sponsored"] is False


def test_exhausted_organic_drains_ads():
    items = blend(organic(2), ads(901, 902, 903), 0.25, 12)
    assert [it["id"] for it in items] == [1, 2, 901, 902, 903]


def test_exhausted_ads_drain_organic_to_limit():
    items = blend(organic(20), ads(901), 0.25, 12)
    assert len(items) == 12
    assert sponsored_positions(items) == [3]


def test_placement_liveness():
    assert placement_is_live(placement(1, 1), NOW)
    assert not placement_is_live(placement(1, 1, status="paused"), NOW)
    assert not placement_is_live(placement(1, 1, end_at=NOW - timedelta(minutes=1)), NOW)
    assert not placement_is_live(placement(1, 1, start_at=NOW + timedelta(minutes=1)), NOW)
    assert placement_is_live(placement(1, 1, start_at=NOW - timedelta(days=1), end_at=None), NOW)


def test_select_orders_targeted_first_then_priority():
    rows = [
        placement(1, 10, priority=1),
        placement(2, 11, priority=5),
        placement(3, 12, priority=0, target="footwear"),
        placement(4, 13, priority=9, target="electronics"),
        placement(5, 14, priority=3, status="rejected"),
    ]
    ordered = select_placements(rows, target_slug="footwear", now=NOW)
    assert [p.id for p in ordered] == [3, 2, 1]


def test_select_without_category_skips_targeted():
    rows = [placement(1, 10, priority=1), placement(2, 11, target="footwear", priority=7)]
    assert [p.id for p in select_placements(rows, now=NOW)] == [1]


def test_select_breaks_priority_ties_by_recency_and_dedupes_products():
    rows = [
        placement(1, 10, priority=2, updated=NOW - timedelta(hours=5)),
        placement(2, 11, priority=2, updated=NOW - timedelta(hours=1)),
        placement(3, 10, priority=1),
    ]
    ordered = select_placements(rows, now=NOW)
    assert [p.id for p in ordered] == [2, 1]
