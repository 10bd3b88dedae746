# tests/test_api_admin.py
from storefront.extensions import db
from storefront.model import Category, SponsoredPlacement


def body(r):
    return r.get_json()


# ---- coupons ---------------------------------------------------------------

def test_coupon_crud_normalizes_payload(client, admin, auth_headers):
    h = auth_headers(admin)
    r = client.post("/api/admin/coupons", json={
        "code": " summer25 ",
        "type": "percent",
        "value": 25,
        "max_discount": 300,
        "allowed_categories": "Apparel, Footwear ,",
        "allowed_brands": ["Stride", " "],
        "expires_at": "2030-01-01T00:00:00Z",
    }, headers=h)
    assert r.status_code == 201
    c = body(r)["data"]
    assert c["code"] == "SUMMER25"
    assert c["allowed_categories"] == ["Apparel", "Footwear"]
    assert c["allowed_brands"] == ["Stride"]
    assert c["expires_at"] == "2030-01-01T00:00:00"

    dup = client.post("/api/admin/coupons", json={"code": "Summer25", "value": 5}, headers=h)
    assert (dup.status_code, body(dup)["message"]) == (400, "Code already exists")

    r = client.put(f"/api/admin/coupons/{c['id']}", json={"active": False, "allowed_brands": None}, headers=h)
    assert body(r)["data"]["active"] is False
    assert body(r)["data"]["allowed_brands"] == []
    assert body(r)["data"]["allowed_categories"] == ["Apparel", "Footwear"]

    listed = body(client.get("/api/admin/coupons", headers=h))["data"]["items"]
    assert [x["code"] for x in listed] == ["SUMMER25"]

    assert client.delete(f"/api/admin/coupons/{c['id']}", headers=h).status_code == 200
    assert client.get(f"/api/admin/coupons/{c['id']}", headers=h).status_code == 404


def test_coupon_validation(client, admin, auth_headers):
    h = auth_headers(admin)
    assert body(client.post("/api/admin/coupons", json={"code": "X", "value": 0}, headers=h))["message"] == "value must be > 0"
    r = client.post("/api/admin/coupons", json={"code": "X", "value": 5, "ctype": "bogo"}, headers=h)
    assert r.status_code == 400
    r = client.post("/api/admin/coupons", json={"code": "X", "value": 5, "starts_at": "soon"}, headers=h)
    assert body(r)["message"] == "Invalid datetime format for starts_at"


def test_partial_update_checks_window_against_stored_dates(client, admin, auth_headers):
    h = auth_headers(admin)
    c = body(client.post("/api/admin/coupons", json={
        "code": "WINDOW", "value": 5, "starts_at": "2030-06-01T00:00:00Z", "expires_at": "2030-07-01T00:00:00Z",
    }, headers=h))["data"]

    r = client.put(f"/api/admin/coupons/{c['id']}", json={"expires_at": "2030-05-01T00:00:00Z"}, headers=h)
    assert (r.status_code, body(r)["message"]) == (400, "expires_at must be after starts_at")
    r = client.put(f"/api/admin/coupons/{c['id']}", json={"starts_at": "2030-08-01T00:00:00Z"}, headers=h)
    assert r.status_code == 400

    stored = body(client.get(f"/api/admin/coupons/{c['id']}", headers=h))["data"]
    assert (stored["starts_at"], stored["expires_at"]) == ("2030-06-01T00:00:00", "2030-07-01T00:00:00")


def test_coupons_are_admin_only(client, shopper, auth_headers):
    assert client.get("/api/admin/coupons", headers=auth_headers(shopper)).status_code == 403


# ---- sponsored placements --------------------------------------------------

def test_priority_conflict_within_target_scope(client, admin, auth_headers, make_product):
    h = auth_headers(admin)
    a, b, c = make_product("A"), make_product("B"), make_product("C")

    r = client.post("/api/admin/sponsored", json={"product_id": a.id, "priority": 5}, headers=h)
    assert r.status_code == 201
    assert body(r)["data"]["status"] == "approved"

    r = client.post("/api/admin/sponsored", json={"product_id": b.id, "priority": 5}, headers=h)
    assert r.status_code == 409

    r = client.post("/api/admin/sponsored",
                    json={"product_id": b.id, "priority": 5, "target_category_slug": " Footwear "}, headers=h)
    assert r.status_code == 201
    assert body(r)["data"]["target_category_slug"] == "footwear"

    r = client.post("/api/admin/sponsored",
                    json={"product_id": c.id, "priority": 5, "target_category_slug": "footwear", "status": "paused"},
                    headers=h)
    assert r.status_code == 409


def test_rejected_placements_release_their_scope(client, admin, auth_headers, make_product, make_placement):
    h = auth_headers(admin)
    old = make_placement(make_product("Old"), priority=2)
    other = make_placement(make_product("Other"), priority=3)

    r = client.put(f"/api/admin/sponsored/{other.id}", json={"priority": 2}, headers=h)
    assert r.status_code == 409
    assert db.session.get(SponsoredPlacement, other.id).priority == 3

    client.put(f"/api/admin/sponsored/{old.id}", json={"status": "rejected"}, headers=h)
    r = client.put(f"/api/admin/sponsored/{other.id}", json={"priority": 2}, headers=h)
    assert r.status_code == 200

    rejected = body(client.get("/api/admin/sponsored", query_string={"status": "rejected"}, headers=h))["data"]["items"]
    assert [p["id"] for p in rejected] == [old.id]


def test_create_placement_needs_a_real_product(client, admin, auth_headers):
    h = auth_headers(admin)
    assert body(client.post("/api/admin/sponsored", json={}, headers=h))["message"] == "product_id required"
    assert body(client.post("/api/admin/sponsored", json={"product_id": 42}, headers=h))["message"] == "Invalid product_id"


def test_public_tracking_endpoints_dedupe(client, make_product, make_placement):
    pl = make_placement(make_product())
    first = body(client.post(f"/api/sponsored/{pl.id}/impression"))["data"]
    second = body(client.post(f"/api/sponsored/{pl.id}/impression"))["data"]
    click = body(client.post(f"/api/sponsored/{pl.id}/click"))["data"]
    assert (first["counted"], second["counted"], click["counted"]) == (True, False, True)

    row = db.session.get(SponsoredPlacement, pl.id)
    db.session.refresh(row)
    assert (row.impressions, row.clicks) == (1, 1)
    assert client.post("/api/sponsored/999/click").status_code == 404


# ---- categories ------------------------------------------------------------

def test_category_lifecycle(client, admin, shopper, auth_headers, make_product):
    h = auth_headers(admin)
    assert client.post("/api/categories", json={"name": "Home"}, headers=auth_headers(shopper)).status_code == 403

    r = client.post("/api/categories", json={"name": "Home & Kitchen"}, headers=h)
    assert r.status_code == 201
    cat = body(r)["data"]
    assert cat["slug"] == "home-kitchen"
    assert client.post("/api/categories", json={"name": "home & kitchen"}, headers=h).status_code == 409

    make_product(category="Home & Kitchen")
    r = client.put(f"/api/categories/{cat['id']}", json={"name": "Kitchen"}, headers=h)
    assert body(r)["data"]["slug"] == "kitchen"

    assert client.delete(f"/api/categories/{cat['id']}", headers=h).status_code == 409

    names = [c["name"] for c in body(client.get("/api/categories"))["data"]["items"]]
    assert names == ["Kitchen"]
    assert Category.query.count() == 1
