# storefront/services/notifications.py
"""Fire-and-forget user notifications. Failures are logged, never raised or retried."""
import logging
import threading

from flask import current_app

from ..extensions import db
from ..model import Notification, Order
from ..utils.money import format_amount

logger = logging.getLogger("storefront.notifications")


def dispatch(fn, *args, **kwargs):
    """Run ``fn`` off the request path (thread when NOTIFY_ASYNC, inline otherwise)."""
    app = current_app._get_current_object()

    def run():
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("notification %s failed", getattr(fn, "__name__", fn))
            db.session.rollback()

    if app.config.get("NOTIFY_ASYNC"):
        def in_context():
            with app.app_context():
                run()
        threading.Thread(target=in_context, name=f"notify-{getattr(fn, '__name__', 'task')}", daemon=True).start()
    else:
        run()


def _notify(user_id, kind, message):
    note = Notification(user_id=user_id, kind=kind, message=message)
    db.session.add(note)
    db.session.commit()
    logger.info("notified user %s: %s", user_id, kind)
    return note


def send_order_confirmation(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        logger.warning("order %s vanished before confirmation", order_id)
        return None
    symbol = current_app.config.get("CURRENCY_SYMBOL", "₹")
    return _notify(
        order.user_id,
        "order_placed",
        f"Order #{order.id} placed. Total {symbol}{format_amount(order.total_amount)}",
    )


def send_order_delivered(order_id):
    order = db.session.get(Order, order_id)
    if not order:
        return None
    return _notify(order.user_id, "order_delivered", f"Order #{order.id} has been delivered")
