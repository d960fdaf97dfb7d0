# Overview: Flask API routes for custody transitions and active-assignment reads.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_admin_role, require_auth
from ..services import custody_service
from ..validation import json_body, parse_datetime, parse_id, parse_optional_id, require_fields

assignments_bp = Blueprint("assignments", __name__, url_prefix="/api/assignments")


@assignments_bp.post("/checkout")
@require_admin_role
def checkout_route():
    """
    Check an asset out to a user (admin only).

    Request body:
    - asset_id: int (required)
    - user_id: int (required)
    - due_at: ISO-8601 datetime (optional)

    Returns 201 with the new assignment. 400 if the asset is missing,
    retired or already checked out, or the user is missing or inactive.
    409 if a concurrent request won the race.
    """
    data = json_body()
    require_fields(data, "asset_id", "user_id")

    assignment = custody_service.checkout(
        parse_id(data["asset_id"], "asset_id"),
        parse_id(data["user_id"], "user_id"),
        parse_datetime(data.get("due_at"), "due_at"),
        actor=g.identity,
    )
    return jsonify({"assignment": assignment.to_dict(include_related=True)}), 201


@assignments_bp.post("/return")
@require_admin_role
def return_route():
    """
    Return an asset (admin only).

    Request body: {"asset_id": int}
    """
    data = json_body()
    require_fields(data, "asset_id")

    assignment = custody_service.return_asset(parse_id(data["asset_id"], "asset_id"), actor=g.identity)
    return jsonify({"assignment": assignment.to_dict(include_related=True)}), 200


@assignments_bp.get("/active")
@require_auth
def active_assignments_route():
    """
    Open assignments.

    Standard users always get their own. Admins get everyone's, or one
    user's with ?user_id=.
    """
    user_id = parse_optional_id(request.args.get("user_id"), "user_id")
    rows = custody_service.list_active_assignments(g.identity, user_id=user_id)
    return jsonify({
        "items": [a.to_dict(include_related=True) for a in rows],
        "count": len(rows),
    })
