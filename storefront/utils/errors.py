# storefront/utils/errors.py
import logging

from flask import jsonify

from .api import api_error

logger = logging.getLogger("storefront.errors")


class StorefrontError(Exception):
    """Expected, user-facing rejection. Carries its HTTP status."""
    status_code = 400

    def __init__(self, message, status_code=None, data=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = data


class NotFoundError(StorefrontError):
    status_code = 404


class EmptyCartError(StorefrontError):
    def __init__(self, message="Cart is empty"):
        super().__init__(message)


class AddressRequiredError(StorefrontError):
    def __init__(self, message="Address required"):
        super().__init__(message)


class InsufficientStockError(StorefrontError):
    def __init__(self, title, product_id=None):
        super().__init__(f"Not enough stock for {title}", data={"product_id": product_id})
        self.product_id = product_id


class PlacementConflictError(StorefrontError):
    status_code = 409


def register_error_handlers(app):
    @app.errorhandler(StorefrontError)
    def handle_storefront_error(e):
        # business-rule rejections are routine traffic
        logger.info("rejected: %s", e.message)
        r = jsonify(api_error(e.message, e.data))
        r.status_code = e.status_code
        return r

    @app.errorhandler(ValueError)
    def handle_value_error(e):
        r = jsonify(api_error(str(e)))
        r.status_code = 422
        return r
