# backend/custody/routes/system.py
"""
System health endpoint.

Checks store connectivity and the session table so deployments can tell
a dead database from a dead process.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Asset, SessionToken, User
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        asset_count = db.session.query(Asset).filter(Asset.deleted_at.is_(None)).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "assets": asset_count,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_session_health() -> dict:
    start_time = time.time()
    try:
        now = utcnow()
        live = db.session.query(SessionToken).filter(SessionToken.expires_at > now).count()
        # expired rows are deleted lazily or by `flask maintenance cleanup-sessions`
        expired = db.session.query(SessionToken).filter(SessionToken.expires_at <= now).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": live,
                "expired_pending_cleanup": expired,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session store error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: all checks healthy
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_health()

    unhealthy = any(c["status"] == "unhealthy" for c in (database_health, session_health))

    response = {
        "status": "unhealthy" if unhealthy else "healthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "sessions": session_health,
        },
    }
    return response, 503 if unhealthy else 200
