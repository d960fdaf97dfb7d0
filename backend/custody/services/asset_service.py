# Overview: Service-layer operations for asset administration and history.

"""
Asset administration.

Status edits here are plain field updates (MISSING, MAINTENANCE, back to
AVAILABLE). Entering or leaving CHECKED_OUT is reserved for
custody_service.checkout / return_asset, so these functions refuse to set
CHECKED_OUT and refuse to change the status of an asset someone holds.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import InvalidRequest, NotFound
from ..models import (
    Asset,
    ASSET_STATUSES,
    ASSET_STATUS_AVAILABLE,
    ASSET_STATUS_CHECKED_OUT,
    ASSET_STATUS_RETIRED,
)
from ..time_utils import utcnow
from . import custody_service, event_service
from .concurrency import atomic


def _validate_status(status: str) -> str:
    if status not in ASSET_STATUSES:
        raise InvalidRequest(f"status must be one of {', '.join(ASSET_STATUSES)}", field="status")
    if status == ASSET_STATUS_CHECKED_OUT:
        raise InvalidRequest("Use checkout to mark an asset as checked out", field="status")
    if status == ASSET_STATUS_RETIRED:
        raise InvalidRequest("Delete the asset to retire it", field="status")
    return status


def get_asset(asset_id: int, *, include_deleted: bool = False) -> Asset:
    asset = db.session.get(Asset, asset_id)
    if asset is None or (asset.is_deleted and not include_deleted):
        raise NotFound("Asset not found")
    return asset


def list_assets(*, status: str | None = None) -> list[Asset]:
    """Non-deleted assets, most recently updated first."""
    q = db.session.query(Asset).filter(Asset.deleted_at.is_(None))
    if status:
        if status not in ASSET_STATUSES:
            raise InvalidRequest(f"status must be one of {', '.join(ASSET_STATUSES)}", field="status")
        q = q.filter(Asset.status == status)
    return q.order_by(Asset.updated_at.desc(), Asset.id.desc()).all()


def create_asset(
    *,
    name: str,
    asset_tag_id: str,
    status: str | None = None,
    category: str | None = None,
    serial: str | None = None,
) -> Asset:
    if not name or not asset_tag_id:
        raise InvalidRequest("name and asset_tag_id are required")

    with atomic("Create asset"):
        asset = Asset(
            name=name,
            asset_tag_id=asset_tag_id,
            status=_validate_status(status or ASSET_STATUS_AVAILABLE),
            category=category,
            serial=serial,
        )
        db.session.add(asset)
    return asset


def update_asset(asset_id: int, changes: dict) -> Asset:
    with atomic("Update asset"):
        asset = get_asset(asset_id)

        if "status" in changes and changes["status"] != asset.status:
            new_status = _validate_status(changes["status"])
            if asset.status == ASSET_STATUS_CHECKED_OUT:
                raise InvalidRequest("Return the asset before changing its status", field="status")
            asset.status = new_status

        if "name" in changes:
            if not changes["name"]:
                raise InvalidRequest("name cannot be empty", field="name")
            asset.name = changes["name"]
        if "category" in changes:
            asset.category = changes["category"]
        if "serial" in changes:
            asset.serial = changes["serial"]
    return asset


def retire_asset(asset_id: int) -> Asset:
    """
    Soft-delete: set deleted_at and status RETIRED.

    Refused while the asset is checked out so the holder invariant holds.
    """
    with atomic("Retire asset"):
        asset = get_asset(asset_id)
        if custody_service.get_active_assignment(asset.id) is not None:
            raise InvalidRequest("Return the asset before retiring it", field="asset_id")
        asset.deleted_at = utcnow()
        asset.status = ASSET_STATUS_RETIRED
    return asset


def asset_history(asset_id: int) -> dict:
    """Assignments (newest first) plus the last 200 enriched events."""
    asset = get_asset(asset_id, include_deleted=True)
    assignments = custody_service.assignment_history(asset.id)
    events = event_service.events_for_asset(asset)
    return {
        "asset": asset.to_dict(),
        "assignments": [a.to_dict(include_related=True) for a in assignments],
        "events": [e.to_dict() for e in events],
    }
