# Overview: Service-layer operations for login sessions; issue, resolve, revoke.

"""
Session Token Management Service

Tokens are never stored in clear: the database holds only their digest.
Expiry is checked server-side on every request; the cookie max-age is a
hint to the browser only.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes = 256 bits)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout of SESSION_MAX_AGE_DAYS (default 7, minimum 1)
- Expired rows are deleted when detected
- Owner deactivation invalidates every live session immediately
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, asdict
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..errors import Forbidden, NotFound, Unauthenticated
from ..models import SessionToken, User, ROLE_ADMIN
from ..time_utils import as_utc_naive, utcnow
from .concurrency import atomic, lock_for_update


@dataclass(frozen=True)
class Identity:
    """
    Authenticated caller, derived only from a server-side session row.

    Client-supplied headers never contribute to it.
    """
    user_id: int
    username: str
    name: str
    role: str
    user_tag_id: str
    session_id: int

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("session_id")
        data["is_admin"] = self.is_admin
        return data


def session_ttl() -> timedelta:
    days = int(current_app.config.get("SESSION_MAX_AGE_DAYS", 7))
    return timedelta(days=max(1, days))


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast digest is sufficient here
    (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue(user_id: int) -> tuple[SessionToken, str]:
    """
    Create a session for user_id.

    Returns (session_record, plaintext_token). The client receives the
    plaintext token; the database stores only its hash.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if not user.is_active:
        raise Forbidden("User is inactive")

    plaintext_token = generate_token()
    now = utcnow()

    with atomic("Session issue"):
        session = SessionToken(
            user_id=user.id,
            token_hash=hash_token(plaintext_token),
            created_at=now,
            last_seen_at=now,
            expires_at=now + session_ttl(),
        )
        db.session.add(session)

    current_app.logger.info("Session %s issued for user %s", session.id, user_id)
    return session, plaintext_token


def resolve(token: str | None) -> Identity:
    """
    Resolve a raw token into the caller's Identity.

    Lookup, validation, and the last_seen_at refresh run in one
    transaction with the session row locked.

    Raises:
        Unauthenticated: no token, unknown token, or expired session
            (the expired row is deleted)
        Forbidden: the owning user has been deactivated
    """
    if not token:
        raise Unauthenticated("Not authenticated")

    token_hash = hash_token(token)
    now = utcnow()
    expired_session_id = None
    identity = None

    with atomic("Session resolve"):
        session = lock_for_update(
            db.session.query(SessionToken).filter_by(token_hash=token_hash)
        ).first()
        if session is None:
            raise Unauthenticated("Session is invalid or expired")

        if as_utc_naive(session.expires_at) <= now:
            expired_session_id = session.id
            db.session.delete(session)
        else:
            user = session.user
            if user is None or not user.is_active:
                current_app.logger.warning("Session %s rejected: user %s inactive", session.id, session.user_id)
                raise Forbidden("User is inactive")

            session.last_seen_at = now
            identity = Identity(
                user_id=user.id,
                username=user.username,
                name=user.name,
                role=user.role,
                user_tag_id=user.user_tag_id,
                session_id=session.id,
            )

    if expired_session_id is not None:
        current_app.logger.info("Expired session %s removed", expired_session_id)
        raise Unauthenticated("Session is invalid or expired")
    return identity


def revoke(token: str | None) -> int:
    """
    Delete every session matching the token's digest.

    Idempotent: an unknown or missing token revokes nothing and is not an error.
    Returns the number of rows deleted.
    """
    if not token:
        return 0
    with atomic("Session revoke"):
        deleted = db.session.query(SessionToken).filter_by(
            token_hash=hash_token(token)
        ).delete(synchronize_session=False)
    return deleted


def revoke_all_user_sessions(user_id: int, *, commit: bool = True) -> int:
    """
    Delete all sessions for a user.

    Used on password change and by admins; every device must log in again.
    """
    deleted = db.session.query(SessionToken).filter_by(
        user_id=user_id
    ).delete(synchronize_session=False)
    if commit:
        db.session.commit()
    return deleted


def cleanup_expired_sessions() -> int:
    """
    Delete sessions whose expiry has passed.

    resolve() removes expired rows lazily; this sweeps the ones nobody
    presents again. Run periodically (`flask maintenance cleanup-sessions`).
    """
    with atomic("Session cleanup"):
        deleted = db.session.query(SessionToken).filter(
            SessionToken.expires_at <= utcnow()
        ).delete(synchronize_session=False)
    return deleted
