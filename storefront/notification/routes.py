from flask import request

from . import bp
from ..extensions import db
from ..model import Notification
from ..utils.api import ok
from ..utils.decorators import current_user, login_required
from ..utils.errors import NotFoundError


@bp.get("")
@login_required
def list_notifications():
    user = current_user()
    q = Notification.query.filter_by(user_id=user.id)
    if (request.args.get("unread") or "").lower() in {"1", "true", "yes"}:
        q = q.filter(Notification.is_read.is_(False))
    notes = q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
    return ok("Notifications fetched", [n.as_api() for n in notes])


@bp.put("/<int:note_id>/read")
@login_required
def mark_as_read(note_id):
    user = current_user()
    note = db.session.get(Notification, note_id)
    if not note or note.user_id != user.id:
        raise NotFoundError("Notification not found")
    note.is_read = True
    db.session.commit()
    return ok("Marked as read", note.as_api())
