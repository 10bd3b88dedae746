# --- storefront/__init__.py ---
import logging

from flask import Flask

from .config import Config
from .extensions import db, jwt, cors, migrate
from .utils.api import ok


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("storefront").setLevel(level)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    cfg = config_object or Config
    app.config.from_object(cfg)
    cfg.init_app(app)

    _configure_logging(app)

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    migrate.init_app(app, db)

    from .utils.errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    from .auth import bp as auth_bp; app.register_blueprint(auth_bp)
    from .product import bp as product_bp; app.register_blueprint(product_bp)
    from .category import bp as category_bp; app.register_blueprint(category_bp)
    from .cart import bp as cart_bp; app.register_blueprint(cart_bp)
    from .order import bp as order_bp; app.register_blueprint(order_bp)
    from .coupon import bp as coupon_bp; app.register_blueprint(coupon_bp)
    from .sponsored import bp as sponsored_admin_bp, public_bp as sponsored_bp
    app.register_blueprint(sponsored_admin_bp)
    app.register_blueprint(sponsored_bp)
    from .notification import bp as notification_bp; app.register_blueprint(notification_bp)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return ok("API running")

    with app.app_context():
        from . import model  # noqa: F401
        db.create_all()

    logging.getLogger("storefront").info("app ready (%d blueprints)", len(app.blueprints))
    return app
