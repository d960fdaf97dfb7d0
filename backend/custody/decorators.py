# Overview: Authorization guard; session-cookie authentication and role checks for routes.

"""
The caller's identity comes from exactly one place: the session cookie,
resolved server-side by session_service.resolve(). Role or user headers
sent by the client are never consulted.

- require_user()  -> Identity, or raises Unauthenticated / Forbidden
- require_admin() -> Identity with role ADMIN, or raises Forbidden

The decorator forms store the identity on g.identity. Failures propagate
as typed errors and are rendered (401 / 403) by the app's error handler.
"""

from functools import wraps

from flask import current_app, g, request

from .errors import Forbidden
from .services import session_service
from .services.session_service import Identity


def session_cookie_name() -> str:
    return current_app.config.get("SESSION_COOKIE_NAME_CUSTODY", "custody_session")


def read_session_token() -> str | None:
    token = request.cookies.get(session_cookie_name())
    return token or None


def require_user() -> Identity:
    identity = session_service.resolve(read_session_token())
    g.identity = identity
    return identity


def require_admin() -> Identity:
    identity = require_user()
    if not identity.is_admin:
        current_app.logger.warning(
            "Admin access denied for user %s on %s %s", identity.user_id, request.method, request.path
        )
        raise Forbidden("Admin role is required for this endpoint")
    return identity


def require_auth(f):
    """Require a valid session; sets g.identity."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        require_user()
        return f(*args, **kwargs)

    return decorated_function


def require_admin_role(f):
    """Require a valid session owned by an ADMIN; sets g.identity."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        require_admin()
        return f(*args, **kwargs)

    return decorated_function
