# storefront/model/analytics.py
from ..extensions import db
from ..utils.dates import utcnow, ymd_utc


class AnalyticsEvent(db.Model):
    __tablename__ = "analytics_event"
    __table_args__ = (
        # one ad event per session/day/placement; NULL placement_id rows never collide
        db.UniqueConstraint("session_id", "event", "ymd", "placement_id", name="uq_event_session_day_placement"),
        db.Index("ix_event_ymd_event", "ymd", "event"),
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(200), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=True, index=True)
    event = db.Column(db.String(32), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=True)
    placement_id = db.Column(db.Integer, nullable=True, index=True)
    meta = db.Column(db.JSON, default=dict)
    ip = db.Column(db.String(64), default="")
    ua = db.Column(db.String(255), default="")
    ymd = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD UTC
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.created_at is None:
            self.created_at = utcnow()
        if not self.ymd:
            self.ymd = ymd_utc(self.created_at)
