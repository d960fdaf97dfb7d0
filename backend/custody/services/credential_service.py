# Overview: Credential store; password hashing and verification for users.

"""
Credential Store

Passwords are hashed with scrypt through werkzeug.security. The stored
string is `scrypt:<N>:<r>:<p>$<salt>$<hex digest>`: it carries its own cost
parameters and a fresh random salt per call, so two users with the same
password (or one user re-setting the same password) never share a hash.

Hashes imported from the earlier deployment use the short form
`scrypt$<salt>$<hex digest>` (N=16384, r=8, p=1, 64-byte key). They still
verify.

SECURITY NOTES:
- Digests are compared with hmac.compare_digest (constant time).
- Lookups fail closed: a missing or inactive user never authenticates.
- When the username does not exist we still run one hash check against a
  dummy hash so response time does not reveal which usernames exist.
"""

from __future__ import annotations

import hashlib
import hmac
from functools import lru_cache

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from ..extensions import db
from ..errors import InvalidRequest, NotFound
from ..models import User
from . import session_service

MAX_PASSWORD_BYTES = 1024
SALT_LENGTH = 16

# Short-form hashes: scrypt$<salt>$<hex>
LEGACY_PREFIX = "scrypt$"
LEGACY_SCRYPT_N = 16384
LEGACY_SCRYPT_R = 8
LEGACY_SCRYPT_P = 1
LEGACY_KEY_LENGTH = 64


def normalize_username(raw: str | None) -> str:
    return (raw or "").strip().lower()


def _hash_method() -> str:
    return current_app.config.get("PASSWORD_HASH_METHOD", "scrypt")


def validate_password(password: str | None) -> str:
    if not isinstance(password, str) or not password:
        raise InvalidRequest("password is required", field="password")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidRequest(f"password must be at most {MAX_PASSWORD_BYTES} bytes", field="password")
    return password


def hash_password(password: str) -> str:
    """Hash with PASSWORD_HASH_METHOD (default: Werkzeug's scrypt parameters)."""
    validate_password(password)
    return generate_password_hash(password, method=_hash_method(), salt_length=SALT_LENGTH)


def _verify_legacy(password: str, password_hash: str) -> bool:
    _, salt, stored = password_hash.split("$", 2)
    if not salt or not stored:
        return False
    computed = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=LEGACY_SCRYPT_N,
        r=LEGACY_SCRYPT_R,
        p=LEGACY_SCRYPT_P,
        dklen=LEGACY_KEY_LENGTH,
    ).hex()
    return hmac.compare_digest(computed, stored.lower())


def verify_password(password: str, password_hash: str) -> bool:
    """
    True if password matches the stored hash.

    Malformed stored hashes and unknown methods never match.
    """
    if not password or not password_hash:
        return False
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        if password_hash.startswith(LEGACY_PREFIX):
            return _verify_legacy(password, password_hash)
        return check_password_hash(password_hash, password)
    except ValueError:
        # unknown method or unusable parameters
        return False


@lru_cache(maxsize=4)
def _dummy_hash(method: str) -> str:
    return generate_password_hash("dummy-password-for-timing", method=method, salt_length=SALT_LENGTH)


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active user whose credentials match, else None.

    Does not create a session; see session_service.issue().
    """
    normalized = normalize_username(username)
    user = db.session.query(User).filter_by(username=normalized).first() if normalized else None

    if user is None:
        verify_password(password or "", _dummy_hash(_hash_method()))
        return None

    password_ok = verify_password(password or "", user.password_hash)
    if not user.is_active:
        return None
    return user if password_ok else None


def verify(username: str, password: str) -> bool:
    return authenticate(username, password) is not None


def set_password(user_id: int, password: str) -> User:
    """
    Replace a user's password (fresh salt) and revoke their live sessions.

    Caller commits.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    user.password_hash = hash_password(password)
    session_service.revoke_all_user_sessions(user.id, commit=False)
    return user
