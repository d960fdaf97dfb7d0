from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ROLE_ADMIN = "ADMIN"
ROLE_USER = "USER"
ROLES = (ROLE_ADMIN, ROLE_USER)


class User(db.Model):
    """
    People who can hold assets and (with a password) sign in.

    Usernames are stored trimmed and lower-cased so the unique constraint
    is case-insensitive. Users are never hard-deleted: deactivation
    (is_active=False) blocks login and invalidates live sessions.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.UniqueConstraint("user_tag_id", name="uq_users_user_tag_id"),
        db.CheckConstraint("role IN ('ADMIN', 'USER')", name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    # scrypt:<N>:<r>:<p>$<salt>$<hex digest> (short scrypt$<salt>$<hex> also verifies)
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Badge / tag printed on the user's card; events reference users by this value
    user_tag_id = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        server_default=db.func.now(), onupdate=db.func.now(),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "user_tag_id": self.user_tag_id,
            "role": self.role,
            "is_active": self.is_active,
        }

    def to_dict(self) -> dict:
        data = self.snapshot()
        data.update({
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        })
        return data


class SessionToken(db.Model):
    """
    Server-side login session.

    Only the SHA-256 digest of the opaque token is stored; the raw value
    goes to the client once (cookie) and is never persisted or logged.
    Rows are deleted on logout and on expiry detection.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.UniqueConstraint("token_hash", name="uq_session_tokens_token_hash"),
        db.Index("ix_session_tokens_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    # Advisory telemetry; concurrent refreshes are last-write-wins
    last_seen_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "last_seen_at": to_utc_z(self.last_seen_at),
        }
