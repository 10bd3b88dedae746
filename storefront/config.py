import os
from datetime import timedelta


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Pricing
    TAX_RATE = float(os.getenv("TAX_RATE", "0.05"))
    EXPRESS_SHIPPING_FEE = int(os.getenv("EXPRESS_SHIPPING_FEE", "99"))
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")

    # Listing
    SPONSORED_RATIO = float(os.getenv("SPONSORED_RATIO", "0.25"))
    DEFAULT_PAGE_SIZE = 12
    MAX_PAGE_SIZE = 100

    # Order confirmation etc. run on a background thread when true
    NOTIFY_ASYNC = _env_bool("NOTIFY_ASYNC", True)

    @staticmethod
    def init_app(app):
        if app.config.get("SQLALCHEMY_DATABASE_URI"):
            return
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret-with-enough-length-for-hs256"
    NOTIFY_ASYNC = False
    LOG_LEVEL = "WARNING"
