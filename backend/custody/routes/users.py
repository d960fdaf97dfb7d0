# Overview: Flask API routes for admin user management.

"""
User administration API routes (ADMIN only).

Endpoints:
- GET    /api/users                      list users with their open assignments
- GET    /api/users/<id>                 one user
- POST   /api/users                      create
- PATCH  /api/users/<id>                 edit name/username/email/role/is_active/password
- POST   /api/users/<id>/revoke-sessions log the user out everywhere
"""

from flask import Blueprint, jsonify, request

from ..decorators import require_admin_role
from ..errors import InvalidRequest
from ..extensions import db
from ..models import Assignment
from ..services import user_service
from ..validation import clean_str, json_body, parse_bool, require_fields

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _open_assignments_by_user(user_ids: list[int]) -> dict[int, list[dict]]:
    if not user_ids:
        return {}
    rows = (
        db.session.query(Assignment)
        .filter(Assignment.user_id.in_(user_ids), Assignment.returned_at.is_(None))
        .order_by(Assignment.checked_out_at.desc())
        .all()
    )
    grouped: dict[int, list[dict]] = {uid: [] for uid in user_ids}
    for a in rows:
        grouped[a.user_id].append(a.to_dict(include_related=True))
    return grouped


def _password(value) -> str:
    # passwords are taken verbatim, no trimming
    if not isinstance(value, str):
        raise InvalidRequest("password must be a string", field="password")
    return value


@users_bp.get("")
@require_admin_role
def list_users_route():
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    users = user_service.list_users(include_inactive=include_inactive)
    open_by_user = _open_assignments_by_user([u.id for u in users])

    items = []
    for u in users:
        item = u.to_dict()
        item["active_assignments"] = open_by_user.get(u.id, [])
        items.append(item)
    return jsonify({"items": items, "count": len(items)})


@users_bp.get("/<int:user_id>")
@require_admin_role
def get_user_route(user_id: int):
    user = user_service.get_user(user_id)
    item = user.to_dict()
    item["active_assignments"] = _open_assignments_by_user([user.id])[user.id]
    return jsonify({"user": item})


@users_bp.post("")
@require_admin_role
def create_user_route():
    """
    Request body:
    - username, password, name, user_tag_id: str (required)
    - role: "ADMIN" | "USER" (default USER)
    - email: str (optional)
    """
    data = json_body()
    require_fields(data, "username", "password", "name", "user_tag_id")

    password = _password(data["password"])

    user = user_service.create_user(
        username=clean_str(data["username"], "username", max_length=64),
        password=password,
        name=clean_str(data["name"], "name", max_length=120),
        user_tag_id=clean_str(data["user_tag_id"], "user_tag_id", max_length=64),
        role=data.get("role"),
        email=clean_str(data.get("email"), "email", max_length=255),
    )
    return jsonify({"user": user.to_dict()}), 201


@users_bp.patch("/<int:user_id>")
@require_admin_role
def update_user_route(user_id: int):
    data = json_body()

    changes = {}
    if "name" in data:
        changes["name"] = clean_str(data["name"], "name", max_length=120)
    if "username" in data:
        changes["username"] = clean_str(data["username"], "username", max_length=64)
    if "email" in data:
        changes["email"] = clean_str(data["email"], "email", max_length=255)
    if "role" in data:
        changes["role"] = data["role"]
    if "is_active" in data:
        changes["is_active"] = parse_bool(data["is_active"], "is_active")
    if "password" in data:
        changes["password"] = _password(data["password"])

    user = user_service.update_user(user_id, changes)
    return jsonify({"user": user.to_dict()})


@users_bp.post("/<int:user_id>/revoke-sessions")
@require_admin_role
def revoke_sessions_route(user_id: int):
    revoked = user_service.revoke_sessions(user_id)
    return jsonify({"ok": True, "revoked": revoked})
