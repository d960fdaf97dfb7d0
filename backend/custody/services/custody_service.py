# Overview: Custody ledger; checkout/return transitions and active-assignment reads.

"""
Custody Ledger

"Who holds this asset right now?" has exactly one answer.
Checkout and return are the only transitions that move an asset into or
out of CHECKED_OUT, and each runs as a single transaction that also
appends its event.

INVARIANTS:
- For every asset, at most one Assignment has returned_at IS NULL.
- asset.holder_user_id is set iff asset.status == CHECKED_OUT iff an
  active Assignment exists.
- Every successful transition appends exactly one event (CHECKOUT or
  RETURN). No EXIT+CHECKOUT pair is emitted for a single checkout.

CONCURRENCY:
- The asset row is read FOR UPDATE, so concurrent checkouts of the same
  asset serialize on PostgreSQL.
- The partial unique index uq_assignments_active_asset and
  Asset.version_id are the store-level backstop (SQLite, or any path that
  skipped the lock). The loser gets InvalidRequest or StoreConflict.
- Nothing is retried internally.

Re-running a successful checkout or return fails with InvalidRequest
("already checked out" / "no active assignment").
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..errors import InvalidRequest
from ..models import (
    Asset,
    Assignment,
    User,
    ASSET_STATUS_AVAILABLE,
    ASSET_STATUS_CHECKED_OUT,
    EVENT_CHECKOUT,
    EVENT_RETURN,
)
from ..time_utils import as_utc_naive, to_utc_z, utcnow
from . import event_service
from .concurrency import atomic, lock_for_update
from .session_service import Identity


def _active_assignment_query(asset_id: int):
    return (
        db.session.query(Assignment)
        .filter(Assignment.asset_id == asset_id, Assignment.returned_at.is_(None))
        .order_by(Assignment.checked_out_at.desc(), Assignment.id.desc())
    )


def get_active_assignment(asset_id: int) -> Assignment | None:
    return _active_assignment_query(asset_id).first()


def checkout(
    asset_id: int,
    user_id: int,
    due_at: Optional[datetime] = None,
    *,
    actor: Identity | None = None,
) -> Assignment:
    """
    Hand an asset to a user.

    Preconditions (checked inside the transaction; any failure aborts it
    with nothing written):
    - asset exists and is not soft-deleted
    - user exists and is active
    - no active assignment exists for the asset

    Raises:
        InvalidRequest: a precondition failed
        StoreConflict: a concurrent write won the race
    """
    now = utcnow()
    due_at = as_utc_naive(due_at)
    if due_at is not None and due_at <= now:
        raise InvalidRequest("due_at must be in the future", field="due_at")

    with atomic("Checkout"):
        asset = lock_for_update(db.session.query(Asset).filter_by(id=asset_id)).first()
        if asset is None or asset.is_deleted:
            raise InvalidRequest("Asset not found", field="asset_id")

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            raise InvalidRequest("User not found or inactive", field="user_id")

        if get_active_assignment(asset.id) is not None:
            raise InvalidRequest("Asset is already checked out", field="asset_id")

        assignment = Assignment(
            asset_id=asset.id,
            user_id=user.id,
            checked_out_at=now,
            due_at=due_at,
            returned_at=None,
        )
        db.session.add(assignment)
        # Hit the partial unique index before touching the asset row
        db.session.flush()

        asset.status = ASSET_STATUS_CHECKED_OUT
        asset.holder_user_id = user.id

        event_service.record(
            event_type=EVENT_CHECKOUT,
            asset_tag_id=asset.asset_tag_id,
            user_tag_id=user.user_tag_id,
            confidence=1.0,
            ts=now,
            details={
                "assignment_id": assignment.id,
                "due_at": to_utc_z(due_at),
                "actor_user_id": actor.user_id if actor else None,
            },
        )
        asset_tag, user_tag = asset.asset_tag_id, user.user_tag_id

    current_app.logger.info("Checkout: asset %s -> user %s (assignment %s)", asset_tag, user_tag, assignment.id)
    return assignment


def return_asset(asset_id: int, *, actor: Identity | None = None) -> Assignment:
    """
    Close the asset's active assignment and make it AVAILABLE again.

    If more than one open assignment ever existed, the most recent by
    checked_out_at is closed.

    Raises:
        InvalidRequest: asset missing, or no active assignment
        StoreConflict: a concurrent write won the race
    """
    now = utcnow()

    with atomic("Return"):
        asset = lock_for_update(db.session.query(Asset).filter_by(id=asset_id)).first()
        if asset is None:
            raise InvalidRequest("Asset not found", field="asset_id")

        active = get_active_assignment(asset.id)
        if active is None:
            raise InvalidRequest("No active assignment for this asset", field="asset_id")

        active.returned_at = now
        asset.status = ASSET_STATUS_AVAILABLE
        asset.holder_user_id = None

        holder = active.user
        event_service.record(
            event_type=EVENT_RETURN,
            asset_tag_id=asset.asset_tag_id,
            user_tag_id=holder.user_tag_id if holder else None,
            confidence=1.0,
            ts=now,
            details={
                "assignment_id": active.id,
                "returned_at": to_utc_z(now),
                "actor_user_id": actor.user_id if actor else None,
            },
        )
        asset_tag = asset.asset_tag_id

    current_app.logger.info("Return: asset %s (assignment %s)", asset_tag, active.id)
    return active


def scoped_user_id(identity: Identity, requested_user_id: int | None) -> int | None:
    """
    User filter for identity-scoped reads.

    Non-admins are always pinned to themselves; admins may pass an
    override (None means everyone).
    """
    if identity.is_admin:
        return requested_user_id
    return identity.user_id


def list_active_assignments(identity: Identity, *, user_id: int | None = None) -> list[Assignment]:
    q = db.session.query(Assignment).filter(Assignment.returned_at.is_(None))
    scoped = scoped_user_id(identity, user_id)
    if scoped is not None:
        q = q.filter(Assignment.user_id == scoped)
    return q.order_by(Assignment.checked_out_at.desc(), Assignment.id.desc()).all()


def assignment_history(asset_id: int) -> list[Assignment]:
    return (
        db.session.query(Assignment)
        .filter(Assignment.asset_id == asset_id)
        .order_by(Assignment.checked_out_at.desc(), Assignment.id.desc())
        .all()
    )
