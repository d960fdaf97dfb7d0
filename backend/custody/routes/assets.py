# Overview: Flask API routes for the asset catalog and per-asset custody history.

from flask import Blueprint, jsonify, request

from ..decorators import require_admin_role, require_auth
from ..services import asset_service, custody_service
from ..validation import clean_str, json_body, require_fields

assets_bp = Blueprint("assets", __name__, url_prefix="/api/assets")


def _asset_with_holder(asset) -> dict:
    item = asset.to_dict()
    active = custody_service.get_active_assignment(asset.id)
    item["active_assignment"] = active.to_dict(include_related=True) if active else None
    return item


@assets_bp.get("")
@require_auth
def list_assets_route():
    """Non-deleted assets. Optional ?status= filter."""
    assets = asset_service.list_assets(status=request.args.get("status") or None)
    return jsonify({"items": [a.to_dict() for a in assets], "count": len(assets)})


@assets_bp.get("/<int:asset_id>")
@require_auth
def get_asset_route(asset_id: int):
    asset = asset_service.get_asset(asset_id)
    return jsonify({"asset": _asset_with_holder(asset)})


@assets_bp.get("/<int:asset_id>/history")
@require_auth
def asset_history_route(asset_id: int):
    """Assignments plus the most recent 200 events for one asset, retired ones included."""
    return jsonify(asset_service.asset_history(asset_id))


@assets_bp.post("")
@require_admin_role
def create_asset_route():
    """
    Register an asset (admin only).

    Request body:
    - name: str (required)
    - asset_tag_id: str (required, unique)
    - category, serial: str (optional)
    - status: AVAILABLE | MISSING | MAINTENANCE (default AVAILABLE)
    """
    data = json_body()
    require_fields(data, "name", "asset_tag_id")

    asset = asset_service.create_asset(
        name=clean_str(data["name"], "name", max_length=120),
        asset_tag_id=clean_str(data["asset_tag_id"], "asset_tag_id", max_length=64),
        status=clean_str(data.get("status"), "status"),
        category=clean_str(data.get("category"), "category", max_length=120),
        serial=clean_str(data.get("serial"), "serial", max_length=120),
    )
    return jsonify({"asset": asset.to_dict()}), 201


@assets_bp.patch("/<int:asset_id>")
@require_admin_role
def update_asset_route(asset_id: int):
    data = json_body()

    changes = {}
    for field, max_length in (("name", 120), ("category", 120), ("serial", 120)):
        if field in data:
            changes[field] = clean_str(data[field], field, max_length=max_length)
    if "status" in data:
        changes["status"] = clean_str(data["status"], "status")

    asset = asset_service.update_asset(asset_id, changes)
    return jsonify({"asset": asset.to_dict()})


@assets_bp.delete("/<int:asset_id>")
@require_admin_role
def retire_asset_route(asset_id: int):
    """Soft delete. 400 while the asset is checked out."""
    asset = asset_service.retire_asset(asset_id)
    return jsonify({"asset": asset.to_dict()})
