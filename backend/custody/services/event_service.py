# Overview: Event recorder; appends custody events and resolves them for read paths.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from flask import current_app

from ..extensions import db
from ..errors import InvalidRequest, NotFound
from ..models import Asset, Event, User, EVENT_TYPES
from ..time_utils import utcnow
from .session_service import Identity
"""
Event Recorder Invariants (authoritative)

- Append-only: no updates or deletes of existing events.
- record() writes inside the caller's transaction and never commits; if
  the custody transition rolls back, the event disappears with it.
- Events reference assets/users by tag string. enrich() resolves tags at
  read time with one batched query per entity kind; a tag that no longer
  resolves yields a null snapshot, never an error.
"""


@dataclass
class EnrichedEvent:
    event: Event
    asset: Optional[dict]
    user: Optional[dict]

    def to_dict(self) -> dict:
        data = self.event.to_dict()
        data["asset"] = self.asset
        data["user"] = self.user
        return data


def record(
    *,
    event_type: str,
    asset_tag_id: str | None = None,
    user_tag_id: str | None = None,
    confidence: float = 1.0,
    details: dict | None = None,
    ts: Optional[datetime] = None,
) -> Event:
    """
    Append one event to the current transaction.

    Flushes so the id is assigned, but does not commit.
    """
    if event_type not in EVENT_TYPES:
        raise InvalidRequest(f"Unknown event type {event_type!r}", field="type")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
        raise InvalidRequest("confidence must be between 0 and 1", field="confidence")

    ev = Event(
        ts=ts or utcnow(),
        type=event_type,
        asset_tag_id=asset_tag_id,
        user_tag_id=user_tag_id,
        confidence=float(confidence),
        details=details or {},
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def enrich(events: Iterable[Event]) -> list[EnrichedEvent]:
    """
    Attach the current asset/user snapshot to each event.

    Read-only. Issues at most two queries regardless of len(events).
    """
    events = list(events)
    asset_tags = {e.asset_tag_id for e in events if e.asset_tag_id}
    user_tags = {e.user_tag_id for e in events if e.user_tag_id}

    assets = {}
    if asset_tags:
        rows = db.session.query(Asset).filter(Asset.asset_tag_id.in_(asset_tags)).all()
        assets = {a.asset_tag_id: a.snapshot() for a in rows}

    users = {}
    if user_tags:
        rows = db.session.query(User).filter(User.user_tag_id.in_(user_tags)).all()
        users = {u.user_tag_id: u.snapshot() for u in rows}

    return [
        EnrichedEvent(
            event=e,
            asset=assets.get(e.asset_tag_id) if e.asset_tag_id else None,
            user=users.get(e.user_tag_id) if e.user_tag_id else None,
        )
        for e in events
    ]


def event_limit(requested: int | None = None) -> int:
    cap = int(current_app.config.get("EVENT_LIST_LIMIT", 300))
    if requested is None:
        return cap
    return max(1, min(requested, cap))


def list_events(
    identity: Identity,
    *,
    asset_id: int | None = None,
    user_id: int | None = None,
    event_type: str | None = None,
    limit: int | None = None,
) -> list[EnrichedEvent]:
    """
    Newest-first events visible to the caller.

    Non-admin callers only ever see events carrying their own user tag;
    admins may narrow to any user_id.
    """
    q = db.session.query(Event)

    if asset_id is not None:
        asset = db.session.get(Asset, asset_id)
        if asset is None:
            raise NotFound("Asset not found")
        q = q.filter(Event.asset_tag_id == asset.asset_tag_id)

    if not identity.is_admin:
        q = q.filter(Event.user_tag_id == identity.user_tag_id)
    elif user_id is not None:
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        q = q.filter(Event.user_tag_id == user.user_tag_id)

    if event_type:
        q = q.filter(Event.type == event_type)

    rows = q.order_by(Event.ts.desc(), Event.id.desc()).limit(event_limit(limit)).all()
    return enrich(rows)


def events_for_asset(asset: Asset, *, limit: int = 200) -> list[EnrichedEvent]:
    rows = (
        db.session.query(Event)
        .filter(Event.asset_tag_id == asset.asset_tag_id)
        .order_by(Event.ts.desc(), Event.id.desc())
        .limit(limit)
        .all()
    )
    return enrich(rows)
