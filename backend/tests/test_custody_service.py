"""
Custody ledger service tests.

Verifies:
- Checkout/return move the asset in and out of CHECKED_OUT atomically
- Exactly one event per successful transition, none on failure
- Repeating a transition is rejected, not duplicated
- The store-level unique index backs up the in-transaction check
"""

from datetime import datetime, timedelta, timezone

import pytest

from custody.errors import InvalidRequest
from custody.extensions import db
from custody.models import (
    Assignment,
    Event,
    ASSET_STATUS_AVAILABLE,
    ASSET_STATUS_CHECKED_OUT,
    EVENT_CHECKOUT,
    EVENT_RETURN,
)
from custody.services import asset_service, custody_service, session_service, user_service
from custody.services.concurrency import atomic
from custody.time_utils import as_utc_naive, utcnow


def _events(event_type=None):
    q = db.session.query(Event)
    if event_type:
        q = q.filter_by(type=event_type)
    return q.order_by(Event.id).all()


def _identity(user):
    _, token = session_service.issue(user.id)
    return session_service.resolve(token)


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckout:

    def test_checkout_scenario(self, admin_user, standard_user, asset):
        due = utcnow() + timedelta(days=7)
        actor = _identity(admin_user)

        assignment = custody_service.checkout(asset.id, standard_user.id, due, actor=actor)

        assert assignment.is_active
        assert assignment.user_id == standard_user.id
        assert abs(as_utc_naive(assignment.due_at) - due) < timedelta(seconds=1)

        db.session.refresh(asset)
        assert asset.status == ASSET_STATUS_CHECKED_OUT
        assert asset.holder_user_id == standard_user.id

        events = _events()
        assert len(events) == 1
        assert events[0].type == EVENT_CHECKOUT
        assert events[0].asset_tag_id == "A123"
        assert events[0].user_tag_id == "U001"
        assert events[0].confidence == 1.0
        assert events[0].details["assignment_id"] == assignment.id
        assert events[0].details["actor_user_id"] == admin_user.id

    def test_checkout_without_due_date(self, standard_user, asset):
        assignment = custody_service.checkout(asset.id, standard_user.id)
        assert assignment.due_at is None

    def test_checkout_with_aware_due_date(self, standard_user, asset):
        due = datetime.now(timezone.utc) + timedelta(days=7)

        assignment = custody_service.checkout(asset.id, standard_user.id, due)

        expected = due.astimezone(timezone.utc).replace(tzinfo=None)
        assert abs(as_utc_naive(assignment.due_at) - expected) < timedelta(seconds=1)

    def test_aware_past_due_date_rejected(self, standard_user, asset):
        due = datetime.now(timezone(timedelta(hours=2))) - timedelta(hours=1)

        with pytest.raises(InvalidRequest) as exc:
            custody_service.checkout(asset.id, standard_user.id, due)
        assert exc.value.field == "due_at"
        assert _events() == []

    def test_second_checkout_is_rejected(self, standard_user, other_user, asset):
        custody_service.checkout(asset.id, standard_user.id)

        with pytest.raises(InvalidRequest) as exc:
            custody_service.checkout(asset.id, other_user.id)
        assert exc.value.field == "asset_id"

        db.session.refresh(asset)
        assert asset.holder_user_id == standard_user.id
        assert db.session.query(Assignment).filter_by(asset_id=asset.id).count() == 1
        assert len(_events(EVENT_CHECKOUT)) == 1

    def test_missing_asset(self, standard_user):
        with pytest.raises(InvalidRequest) as exc:
            custody_service.checkout(9999, standard_user.id)
        assert exc.value.field == "asset_id"
        assert _events() == []

    def test_retired_asset(self, standard_user, asset):
        asset_service.retire_asset(asset.id)
        with pytest.raises(InvalidRequest):
            custody_service.checkout(asset.id, standard_user.id)

    def test_missing_user(self, asset):
        with pytest.raises(InvalidRequest) as exc:
            custody_service.checkout(asset.id, 9999)
        assert exc.value.field == "user_id"

    def test_inactive_user(self, standard_user, asset):
        user_service.update_user(standard_user.id, {"is_active": False})
        with pytest.raises(InvalidRequest) as exc:
            custody_service.checkout(asset.id, standard_user.id)
        assert exc.value.field == "user_id"

        db.session.refresh(asset)
        assert asset.status == ASSET_STATUS_AVAILABLE
        assert _events() == []

    def test_due_date_in_the_past(self, standard_user, asset):
        with pytest.raises(InvalidRequest) as exc:
            custody_service.checkout(asset.id, standard_user.id, utcnow() - timedelta(hours=1))
        assert exc.value.field == "due_at"


# =============================================================================
# RETURN
# =============================================================================


class TestReturn:

    def test_return_closes_assignment(self, standard_user, asset):
        assignment = custody_service.checkout(asset.id, standard_user.id)

        returned = custody_service.return_asset(asset.id)

        assert returned.id == assignment.id
        assert returned.returned_at is not None
        assert not returned.is_active

        db.session.refresh(asset)
        assert asset.status == ASSET_STATUS_AVAILABLE
        assert asset.holder_user_id is None
        assert custody_service.get_active_assignment(asset.id) is None

        ret_events = _events(EVENT_RETURN)
        assert len(ret_events) == 1
        assert ret_events[0].details["assignment_id"] == assignment.id
        assert ret_events[0].user_tag_id == "U001"

    def test_return_twice_is_rejected(self, standard_user, asset):
        custody_service.checkout(asset.id, standard_user.id)
        custody_service.return_asset(asset.id)

        with pytest.raises(InvalidRequest):
            custody_service.return_asset(asset.id)
        assert len(_events(EVENT_RETURN)) == 1

    def test_return_never_checked_out(self, asset):
        with pytest.raises(InvalidRequest):
            custody_service.return_asset(asset.id)
        assert _events() == []

    def test_checkout_after_return(self, standard_user, other_user, asset):
        custody_service.checkout(asset.id, standard_user.id)
        custody_service.return_asset(asset.id)

        again = custody_service.checkout(asset.id, other_user.id)

        assert again.user_id == other_user.id
        history = custody_service.assignment_history(asset.id)
        assert [a.user_id for a in history] == [other_user.id, standard_user.id]
        assert [e.type for e in _events()] == [EVENT_CHECKOUT, EVENT_RETURN, EVENT_CHECKOUT]


# =============================================================================
# STORE-LEVEL GUARANTEE
# =============================================================================


def test_unique_index_rejects_second_open_assignment(standard_user, other_user, asset):
    custody_service.checkout(asset.id, standard_user.id)

    with pytest.raises(InvalidRequest) as exc:
        with atomic("Direct insert"):
            db.session.add(Assignment(asset_id=asset.id, user_id=other_user.id, checked_out_at=utcnow()))
    assert exc.value.field == "asset_id"

    assert db.session.query(Assignment).filter(Assignment.returned_at.is_(None)).count() == 1


# =============================================================================
# ACTIVE ASSIGNMENTS (scoped reads)
# =============================================================================


class TestActiveAssignments:

    def test_standard_user_only_sees_own(self, admin_user, standard_user, other_user, asset, second_asset):
        custody_service.checkout(asset.id, standard_user.id)
        custody_service.checkout(second_asset.id, other_user.id)

        mine = custody_service.list_active_assignments(_identity(standard_user), user_id=other_user.id)

        assert [a.user_id for a in mine] == [standard_user.id]

    def test_admin_sees_all_or_filters(self, admin_user, standard_user, other_user, asset, second_asset):
        custody_service.checkout(asset.id, standard_user.id)
        custody_service.checkout(second_asset.id, other_user.id)
        admin = _identity(admin_user)

        assert len(custody_service.list_active_assignments(admin)) == 2
        only_other = custody_service.list_active_assignments(admin, user_id=other_user.id)
        assert [a.asset_id for a in only_other] == [second_asset.id]
