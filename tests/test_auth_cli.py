# tests/test_auth_cli.py
import pandas as pd
import pytest

from storefront.extensions import db
from storefront.model import Category, Product, User
from storefront.services.catalog import import_products_frame, products_frame
from storefront.utils.errors import StorefrontError


def test_first_account_is_admin_and_can_log_in(client):
    r = client.post("/api/auth/register", json={"email": "Root@Example.com", "password": "secret123", "name": "Root"})
    assert r.status_code == 201
    assert r.get_json()["data"]["user"]["role"] == "admin"

    r = client.post("/api/auth/register", json={"email": "b@example.com", "password": "secret123", "name": "B"})
    assert r.get_json()["data"]["user"]["role"] == "user"

    r = client.post("/api/auth/login", json={"email": "root@example.com", "password": "secret123"})
    assert r.status_code == 200
    data = r.get_json()["data"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.get_json()["data"]["user"]["email"] == "root@example.com"

    r = client.post("/api/auth/refresh", json={"refresh_token": data["refresh_token"]})
    assert r.status_code == 200
    # refresh tokens are single use
    assert client.post("/api/auth/refresh", json={"refresh_token": data["refresh_token"]}).status_code == 401


def test_login_rejects_bad_password(client, shopper):
    r = client.post("/api/auth/login", json={"email": shopper.email, "password": "nope"})
    assert r.status_code == 401


def test_last_admin_cannot_be_demoted(client, admin, auth_headers):
    r = client.patch(f"/api/auth/users/{admin.id}/role", json={"role": "user"}, headers=auth_headers(admin))
    assert r.status_code == 400


def test_cli_create_admin_and_seed(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "--email", "Ops@Example.com", "--password", "pw123456", "--name", "Ops"])
    assert "Admin created" in result.output
    assert User.query.filter_by(email="ops@example.com").one().role == "admin"

    result = runner.invoke(args=["seed-products"])
    assert "10 sample products added" in result.output
    assert runner.invoke(args=["seed-products"]).output.startswith("0 sample")
    assert Category.query.count() == 5


def test_import_frame_upserts_by_sku(app, make_product):
    existing = make_product("Old title", price=10, stock=1)
    existing.sku = "SKU-1"
    db.session.commit()

    df = pd.DataFrame([
        {"Title": "New title", "SKU": "SKU-1", "Price": 20, "Stock": 5, "Category": "Garden"},
        {"Title": "Hose", "SKU": "SKU-2", "Price": 15.5, "Stock": 3, "Category": "garden", "Brand": "Aqua"},
    ])
    assert import_products_frame(df) == {"created": 1, "updated": 1}

    refreshed = db.session.get(Product, existing.id)
    assert (refreshed.title, refreshed.price, refreshed.stock, refreshed.category) == ("New title", 20, 5, "Garden")
    hose = Product.query.filter_by(sku="SKU-2").one()
    assert (hose.brand, hose.category) == ("Aqua", "Garden")
    assert Category.query.filter_by(slug="garden").count() == 1

    exported = products_frame()
    assert list(exported["SKU"]) == ["SKU-1", "SKU-2"]


def test_import_frame_is_all_or_nothing(app):
    df = pd.DataFrame([
        {"Title": "Fine", "Price": 10, "Stock": 1},
        {"Title": "Broken", "Price": -5, "Stock": 1},
    ])
    with pytest.raises(StorefrontError):
        import_products_frame(df)
    assert Product.query.count() == 0

    with pytest.raises(StorefrontError) as exc:
        import_products_frame(pd.DataFrame([{"Title": "x"}]))
    assert "Price" in exc.value.message
