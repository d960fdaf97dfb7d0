from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ASSET_STATUS_AVAILABLE = "AVAILABLE"
ASSET_STATUS_CHECKED_OUT = "CHECKED_OUT"
ASSET_STATUS_MISSING = "MISSING"
ASSET_STATUS_MAINTENANCE = "MAINTENANCE"
ASSET_STATUS_RETIRED = "RETIRED"

ASSET_STATUSES = (
    ASSET_STATUS_AVAILABLE,
    ASSET_STATUS_CHECKED_OUT,
    ASSET_STATUS_MISSING,
    ASSET_STATUS_MAINTENANCE,
    ASSET_STATUS_RETIRED,
)


class Asset(db.Model):
    """
    A physical item whose custody is tracked.

    INVARIANT: holder_user_id is set iff status == CHECKED_OUT iff exactly
    one open Assignment references the asset. The check constraint covers
    the first half; the partial unique index on assignments covers the rest.

    version_id gives optimistic concurrency: an UPDATE that lost a race
    raises StaleDataError instead of silently overwriting.
    """
    __tablename__ = "assets"
    __table_args__ = (
        db.UniqueConstraint("asset_tag_id", name="uq_assets_asset_tag_id"),
        db.CheckConstraint(
            "status IN ('AVAILABLE', 'CHECKED_OUT', 'MISSING', 'MAINTENANCE', 'RETIRED')",
            name="ck_assets_status",
        ),
        db.CheckConstraint(
            "(status = 'CHECKED_OUT' AND holder_user_id IS NOT NULL)"
            " OR (status <> 'CHECKED_OUT' AND holder_user_id IS NULL)",
            name="ck_assets_holder_matches_status",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    asset_tag_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    serial = db.Column(db.String(120), nullable=True)

    status = db.Column(db.String(32), nullable=False, default=ASSET_STATUS_AVAILABLE, index=True)
    holder_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    # Soft delete (RETIRED); history stays intact
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        server_default=db.func.now(), onupdate=db.func.now(),
    )

    holder = db.relationship("User", foreign_keys=[holder_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "asset_tag_id": self.asset_tag_id,
            "name": self.name,
            "category": self.category,
            "status": self.status,
            "holder_user_id": self.holder_user_id,
            "deleted": self.is_deleted,
        }

    def to_dict(self) -> dict:
        data = self.snapshot()
        data.update({
            "serial": self.serial,
            "deleted_at": to_utc_z(self.deleted_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        })
        return data


class Assignment(db.Model):
    """
    One custody period of an asset by a user.

    Active iff returned_at IS NULL. Never deleted: closed assignments are
    the custody audit trail.
    """
    __tablename__ = "assignments"
    __table_args__ = (
        # At most one open assignment per asset, enforced by the store
        db.Index(
            "uq_assignments_active_asset",
            "asset_id",
            unique=True,
            sqlite_where=db.text("returned_at IS NULL"),
            postgresql_where=db.text("returned_at IS NULL"),
        ),
        db.Index("ix_assignments_user_open", "user_id", "returned_at"),
        db.Index("ix_assignments_asset_checked_out", "asset_id", "checked_out_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    asset_id = db.Column(db.Integer, db.ForeignKey("assets.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    checked_out_at = db.Column(db.DateTime(timezone=True), nullable=False)
    due_at = db.Column(db.DateTime(timezone=True), nullable=True)
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    asset = db.relationship("Asset", backref=db.backref("assignments", lazy=True))
    user = db.relationship("User", backref=db.backref("assignments", lazy=True))

    @property
    def is_active(self) -> bool:
        return self.returned_at is None

    def to_dict(self, *, include_related: bool = False) -> dict:
        data = {
            "id": self.id,
            "asset_id": self.asset_id,
            "user_id": self.user_id,
            "checked_out_at": to_utc_z(self.checked_out_at),
            "due_at": to_utc_z(self.due_at),
            "returned_at": to_utc_z(self.returned_at),
            "active": self.is_active,
        }
        if include_related:
            data["asset"] = self.asset.snapshot() if self.asset else None
            data["user"] = self.user.snapshot() if self.user else None
        return data
