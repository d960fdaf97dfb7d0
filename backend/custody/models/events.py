from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

EVENT_CHECKOUT = "CHECKOUT"
EVENT_RETURN = "RETURN"
# Produced by gateway/seed collaborators; accepted so their history can live here too
EVENT_ENTER = "ENTER"
EVENT_EXIT = "EXIT"
EVENT_CHECKIN = "CHECKIN"
EVENT_SEED = "SEED"

EVENT_TYPES = (EVENT_CHECKOUT, EVENT_RETURN, EVENT_ENTER, EVENT_EXIT, EVENT_CHECKIN, EVENT_SEED)


class Event(db.Model):
    """
    Append-only custody event log.

    IMMUTABLE: Never update or delete. Rows are written inside the same
    transaction as the custody transition they describe.

    Assets and users are referenced by their external tag strings, not by
    foreign keys, so an event stays valid after the referenced entity is
    renamed, retired, or its tag is reassigned. Resolution happens at read
    time (see event_service.enrich).
    """
    __tablename__ = "events"
    __table_args__ = (
        db.CheckConstraint("confidence >= 0 AND confidence <= 1", name="ck_events_confidence_range"),
        db.Index("ix_events_asset_tag_ts", "asset_tag_id", "ts"),
        db.Index("ix_events_user_tag_ts", "user_tag_id", "ts"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ts = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False, index=True)
    asset_tag_id = db.Column(db.String(64), nullable=True)
    user_tag_id = db.Column(db.String(64), nullable=True)
    confidence = db.Column(db.Float, nullable=False, default=1.0)
    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ts": to_utc_z(self.ts),
            "type": self.type,
            "asset_tag_id": self.asset_tag_id,
            "user_tag_id": self.user_tag_id,
            "confidence": self.confidence,
            "details": self.details or {},
        }
