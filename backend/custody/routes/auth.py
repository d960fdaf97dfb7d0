# Overview: Flask API routes for login, logout and whoami; the session rides in an HTTP-only cookie.

"""
Authentication API routes

SECURITY FEATURES:
- Session token delivered only as an HttpOnly, SameSite=Lax cookie
  (Secure flag and max-age from config); never in the JSON body
- Failed logins do not say whether the username exists
- Logout deletes the server-side session and clears the cookie
"""

from flask import Blueprint, current_app, g, jsonify, make_response

from ..errors import CustodyError, InvalidRequest, Unauthenticated
from ..decorators import read_session_token, require_auth, session_cookie_name
from ..services import credential_service, session_service
from ..validation import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _set_session_cookie(response, token: str) -> None:
    response.set_cookie(
        session_cookie_name(),
        token,
        max_age=int(session_service.session_ttl().total_seconds()),
        path="/",
        secure=current_app.config.get("SESSION_COOKIE_SECURE_FLAG", False),
        httponly=True,
        samesite="Lax",
    )


def _clear_session_cookie(response) -> None:
    response.delete_cookie(
        session_cookie_name(),
        path="/",
        secure=current_app.config.get("SESSION_COOKIE_SECURE_FLAG", False),
        httponly=True,
        samesite="Lax",
    )


@auth_bp.post("/login")
def login_route():
    """
    Verify credentials and start a session.

    Request body: {"username": str, "password": str}

    Returns the user on success and sets the session cookie. A wrong
    password, unknown username, or inactive account all return 401 and
    set no cookie.
    """
    try:
        data = json_body()
        username = data.get("username")
        password = data.get("password")

        if not isinstance(username, str) or not isinstance(password, str):
            raise InvalidRequest("username and password are required")
        username = credential_service.normalize_username(username)
        if not username or not password:
            raise InvalidRequest("username and password are required")

        user = credential_service.authenticate(username, password)
        if user is None:
            current_app.logger.info("Login failed for username %r", username)
            raise Unauthenticated("Invalid credentials")

        session, token = session_service.issue(user.id)
        current_app.logger.info("Login succeeded for user %s", user.id)

        response = make_response(jsonify({
            "user": user.to_dict(),
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200)
        _set_session_cookie(response, token)
        return response

    except CustodyError:
        raise
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke the caller's session (if any) and clear the cookie.

    Idempotent: logging out without a session, or twice, still returns 200.
    """
    try:
        revoked = session_service.revoke(read_session_token())
        response = make_response(jsonify({"ok": True, "revoked": revoked}), 200)
        _clear_session_cookie(response)
        return response

    except CustodyError:
        raise
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Who am I: the identity behind the current session."""
    return jsonify({"user": g.identity.to_dict()})
