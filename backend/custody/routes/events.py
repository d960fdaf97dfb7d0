# Overview: Flask API routes for the custody event log.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import InvalidRequest
from ..services import event_service
from ..validation import parse_optional_id

events_bp = Blueprint("events", __name__, url_prefix="/api/events")


@events_bp.get("")
@require_auth
def list_events_route():
    """
    Newest-first custody events with asset/user snapshots attached.

    Query params:
    - asset_id: int - only events for this asset
    - user_id: int - admins only; standard users are always scoped to themselves
    - type: str - e.g. CHECKOUT, RETURN
    - limit: int - capped at EVENT_LIST_LIMIT
    """
    asset_id = parse_optional_id(request.args.get("asset_id"), "asset_id")
    user_id = parse_optional_id(request.args.get("user_id"), "user_id")

    limit_raw = request.args.get("limit")
    limit = None
    if limit_raw:
        try:
            limit = int(limit_raw)
        except ValueError:
            raise InvalidRequest("limit must be an integer", field="limit")

    events = event_service.list_events(
        g.identity,
        asset_id=asset_id,
        user_id=user_id,
        event_type=request.args.get("type") or None,
        limit=limit,
    )
    return jsonify({"items": [e.to_dict() for e in events], "count": len(events)})
