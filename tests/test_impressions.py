# tests/test_impressions.py
from datetime import datetime, timedelta

from storefront.extensions import db
from storefront.model import AnalyticsEvent, SponsoredPlacement
from storefront.services.impressions import record_click, record_impression, record_impressions_for_listing

DAY = datetime(2026, 4, 2, 8, 30)


def counters(pl):
    row = db.session.get(SponsoredPlacement, pl.id)
    db.session.refresh(row)
    return row.impressions, row.clicks


def test_one_impression_per_session_and_day(app, make_product, make_placement):
    pl = make_placement(make_product())
    assert record_impression(pl.id, "sess-a", now=DAY) is True
    assert record_impression(pl.id, "sess-a", now=DAY + timedelta(hours=10)) is False
    assert counters(pl) == (1, 0)
    assert AnalyticsEvent.query.filter_by(event="sponsored_impression").count() == 1


def test_new_day_or_session_counts_again(app, make_product, make_placement):
    pl = make_placement(make_product())
    record_impression(pl.id, "sess-a", now=DAY)
    assert record_impression(pl.id, "sess-a", now=DAY + timedelta(days=1)) is True
    assert record_impression(pl.id, "sess-b", now=DAY) is True
    assert counters(pl) == (3, 0)


def test_clicks_are_tracked_separately(app, make_product, make_placement):
    pl = make_placement(make_product())
    record_impression(pl.id, "sess-a", now=DAY)
    assert record_click(pl.id, "sess-a", now=DAY) is True
    assert record_click(pl.id, "sess-a", now=DAY) is False
    assert counters(pl) == (1, 1)


def test_event_row_keeps_request_details(app, shopper, make_product, make_placement):
    p = make_product()
    pl = make_placement(p)
    record_impression(pl.id, "sess-a", user_id=shopper.id, ip="10.0.0.1", ua="pytest", product_id=p.id, now=DAY)
    ev = AnalyticsEvent.query.one()
    assert (ev.session_id, ev.user_id, ev.ip, ev.ua, ev.ymd) == ("sess-a", shopper.id, "10.0.0.1", "pytest", "2026-04-02")
    assert ev.placement_id == pl.id
    assert ev.product_id == p.id


def test_listing_helper_only_counts_sponsored_items(app, make_product, make_placement):
    pl = make_placement(make_product())
    items = [
        {"id": 1, "is_sponsored": False},
        {"id": 2, "is_sponsored": True, "placement_id": pl.id},
    ]
    assert record_impressions_for_listing(items, "sess-a", now=DAY) == 1
    assert record_impressions_for_listing(items, "sess-a", now=DAY) == 0
    assert counters(pl) == (1, 0)


def test_listing_helper_swallows_failures(app, make_product, make_placement, monkeypatch):
    from storefront.services import impressions

    def broken(*args, **kwargs):
        raise RuntimeError("db gone")

    monkeypatch.setattr(impressions, "record_impression", broken)
    pl = make_placement(make_product())
    items = [{"id": 2, "is_sponsored": True, "placement_id": pl.id}]
    assert record_impressions_for_listing(items, "sess-a", now=DAY) == 0


def test_duplicate_from_concurrent_request_is_not_counted(app, make_product, make_placement, monkeypatch):
    from storefront.services import impressions

    pl = make_placement(make_product())
    assert record_impression(pl.id, "sess-a", now=DAY) is True

    # the other request inserted its row between our lookup and our insert
    monkeypatch.setattr(impressions, "already_recorded", lambda *args: False)
    assert record_impression(pl.id, "sess-a", now=DAY + timedelta(minutes=5)) is False

    assert counters(pl) == (1, 0)
    assert AnalyticsEvent.query.filter_by(event="sponsored_impression").count() == 1
