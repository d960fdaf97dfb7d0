# Overview: Service-layer operations for user administration.

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidRequest, NotFound
from ..models import User, ROLES, ROLE_ADMIN, ROLE_USER
from . import credential_service, session_service
from .concurrency import atomic


def _validate_role(role: str | None) -> str:
    if role is not None and not isinstance(role, str):
        raise InvalidRequest("role must be a string", field="role")
    role = (role or ROLE_USER).upper()
    if role not in ROLES:
        raise InvalidRequest(f"role must be one of {', '.join(ROLES)}", field="role")
    return role


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def list_users(*, include_inactive: bool = True) -> list[User]:
    q = db.session.query(User)
    if not include_inactive:
        q = q.filter(User.is_active.is_(True))
    return q.order_by(User.name, User.id).all()


def create_user(
    *,
    username: str,
    password: str,
    name: str,
    user_tag_id: str,
    role: str | None = None,
    email: str | None = None,
) -> User:
    """
    Create a user. Usernames are normalized (trimmed, lower-cased).

    Raises InvalidRequest for missing fields, bad role, or a duplicate
    username / user_tag_id.
    """
    normalized = credential_service.normalize_username(username)
    if not normalized:
        raise InvalidRequest("username is required", field="username")
    if not name:
        raise InvalidRequest("name is required", field="name")
    if not user_tag_id:
        raise InvalidRequest("user_tag_id is required", field="user_tag_id")

    with atomic("Create user"):
        user = User(
            username=normalized,
            password_hash=credential_service.hash_password(password),
            name=name,
            email=email,
            user_tag_id=user_tag_id,
            role=_validate_role(role),
            is_active=True,
        )
        db.session.add(user)
    return user


def update_user(user_id: int, changes: dict) -> User:
    """
    Apply admin edits. Recognized keys: name, username, email, role,
    is_active, password. Absent keys are left untouched.

    Deactivating a user keeps their sessions; resolve() rejects them with
    Forbidden. Changing the password revokes all of the user's sessions.
    """
    with atomic("Update user"):
        user = get_user(user_id)

        if "name" in changes:
            if not changes["name"]:
                raise InvalidRequest("name cannot be empty", field="name")
            user.name = changes["name"]
        if "username" in changes:
            normalized = credential_service.normalize_username(changes["username"])
            if not normalized:
                raise InvalidRequest("username cannot be empty", field="username")
            user.username = normalized
        if "email" in changes:
            user.email = changes["email"]
        if "role" in changes:
            user.role = _validate_role(changes["role"])
        if "is_active" in changes:
            user.is_active = bool(changes["is_active"])
        if "password" in changes:
            credential_service.set_password(user.id, changes["password"])
    return user


def ensure_bootstrap_admin(username: str, password: str, user_tag_id: str) -> tuple[User, bool]:
    """
    Create the first ADMIN if no admin exists yet.

    Returns (user, created). Safe to call repeatedly.
    """
    existing = db.session.query(User).filter_by(role=ROLE_ADMIN, is_active=True).first()
    if existing is not None:
        return existing, False
    user = create_user(
        username=username,
        password=password,
        name="Administrator",
        user_tag_id=user_tag_id,
        role=ROLE_ADMIN,
    )
    return user, True


def revoke_sessions(user_id: int) -> int:
    get_user(user_id)
    return session_service.revoke_all_user_sessions(user_id)
