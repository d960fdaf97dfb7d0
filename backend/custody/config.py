# backend/custody/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/custody.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///custody.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session transport (HTTP-only cookie, SameSite=Lax)
    SESSION_COOKIE_NAME_CUSTODY = os.environ.get("SESSION_COOKIE_NAME", "custody_session")
    SESSION_COOKIE_SECURE_FLAG = _env_bool("SESSION_COOKIE_SECURE")
    SESSION_MAX_AGE_DAYS = int(os.environ.get("SESSION_MAX_AGE_DAYS", "7"))

    # werkzeug.security method string, e.g. "scrypt" or "scrypt:32768:8:1"; tests lower N
    PASSWORD_HASH_METHOD = os.environ.get("PASSWORD_HASH_METHOD", "scrypt")

    EVENT_LIST_LIMIT = int(os.environ.get("EVENT_LIST_LIMIT", "300"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Used by `flask system init` when no admin exists yet
    BOOTSTRAP_ADMIN_USERNAME = os.environ.get("BOOTSTRAP_ADMIN_USERNAME")
    BOOTSTRAP_ADMIN_PASSWORD = os.environ.get("BOOTSTRAP_ADMIN_PASSWORD")
    BOOTSTRAP_ADMIN_TAG = os.environ.get("BOOTSTRAP_ADMIN_TAG", "ADMIN001")
