# tests/conftest.py
import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.model import CartItem, Coupon, Product, SponsoredPlacement, User
from storefront.services.checkout import get_or_create_cart


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, role):
    u = User(email=email, name=email.split("@")[0], password_hash=generate_password_hash("secret123"), role=role)
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def admin(app):
    return _user("admin@example.com", "admin")


@pytest.fixture
def seller(app):
    return _user("seller@example.com", "seller")


@pytest.fixture
def shopper(app):
    return _user("shopper@example.com", "user")


@pytest.fixture
def other_shopper(app):
    return _user("other@example.com", "user")


@pytest.fixture
def auth_headers(app):
    def make(user):
        return {"Authorization": f"Bearer {create_access_token(identity=str(user.id))}"}
    return make


@pytest.fixture
def make_product(app):
    def make(title="Widget", price=100, stock=10, category="Apparel", brand="Basics", status="active", owner=None):
        p = Product(
            title=title,
            price=price,
            stock=stock,
            category=category,
            brand=brand,
            status=status,
            owner_id=owner.id if owner else None,
            description="",
        )
        p.ensure_slug()
        db.session.add(p)
        db.session.commit()
        return p
    return make


@pytest.fixture
def make_coupon(app):
    def make(code="SAVE10", ctype="percent", value=10, **kwargs):
        c = Coupon(code=code, ctype=ctype, value=value, active=kwargs.pop("active", True), used_count=0, **kwargs)
        db.session.add(c)
        db.session.commit()
        return c
    return make


@pytest.fixture
def fill_cart(app):
    def fill(user, *lines, coupon_code=None):
        cart = get_or_create_cart(user.id)
        for product, qty in lines:
            cart.items.append(CartItem(product_id=product.id, qty=qty, price_at_add=product.price))
        if coupon_code:
            cart.applied_coupon_code = coupon_code
        db.session.commit()
        return cart
    return fill


@pytest.fixture
def make_placement(app):
    def make(product, priority=0, status="approved", target=None, **kwargs):
        pl = SponsoredPlacement(
            product_id=product.id,
            seller_id=product.owner_id,
            status=status,
            priority=priority,
            target_category_slug=target,
            **kwargs,
        )
        db.session.add(pl)
        db.session.commit()
        return pl
    return make
