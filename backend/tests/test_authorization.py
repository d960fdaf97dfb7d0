"""
Authorization and custody API tests.

Verifies:
- Unauthenticated requests return 401
- Standard users are denied admin operations (403)
- Admins can move custody; every move leaves one event
- Reads are scoped to the caller unless the caller is an admin
"""

from datetime import timedelta

import pytest

from custody.extensions import db
from custody.models import Event
from custody.time_utils import to_utc_z, utcnow


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a session."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/assignments/checkout"),
            ("POST", "/api/assignments/return"),
            ("GET", "/api/assignments/active"),
            ("GET", "/api/events"),
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("GET", "/api/assets"),
            ("POST", "/api/assets"),
            ("GET", "/api/assets/1/history"),
            ("DELETE", "/api/assets/1"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unauthenticated_checkout_writes_nothing(self, client, standard_user, asset):
        resp = client.post("/api/assignments/checkout", json={"asset_id": asset.id, "user_id": standard_user.id})
        assert resp.status_code == 401
        assert db.session.query(Event).count() == 0


# =============================================================================
# STANDARD USER DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestStandardUserDenied:

    def test_cannot_checkout(self, user_client, standard_user, asset):
        resp = user_client.post(
            "/api/assignments/checkout",
            json={"asset_id": asset.id, "user_id": standard_user.id},
        )
        assert resp.status_code == 403
        assert db.session.query(Event).count() == 0

    def test_cannot_return(self, user_client, asset):
        resp = user_client.post("/api/assignments/return", json={"asset_id": asset.id})
        assert resp.status_code == 403

    def test_cannot_list_users(self, user_client):
        assert user_client.get("/api/users").status_code == 403

    def test_cannot_create_asset(self, user_client):
        resp = user_client.post("/api/assets", json={"name": "x", "asset_tag_id": "X1"})
        assert resp.status_code == 403

    def test_can_read_assets(self, user_client, asset):
        resp = user_client.get("/api/assets")
        assert resp.status_code == 200
        assert resp.json["count"] == 1


# =============================================================================
# ADMIN CUSTODY FLOW
# =============================================================================


class TestAdminCustody:

    def test_checkout_and_return(self, admin_client, standard_user, asset):
        due = to_utc_z(utcnow() + timedelta(days=7))

        resp = admin_client.post(
            "/api/assignments/checkout",
            json={"asset_id": asset.id, "user_id": standard_user.id, "due_at": due},
        )
        assert resp.status_code == 201
        body = resp.json["assignment"]
        assert body["active"] is True
        assert body["due_at"] == due
        assert body["asset"]["status"] == "CHECKED_OUT"
        assert body["user"]["user_tag_id"] == "U001"

        events = db.session.query(Event).all()
        assert [e.type for e in events] == ["CHECKOUT"]
        assert events[0].details["assignment_id"] == body["id"]

        again = admin_client.post(
            "/api/assignments/checkout",
            json={"asset_id": asset.id, "user_id": standard_user.id},
        )
        assert again.status_code == 400
        assert again.json["field"] == "asset_id"

        resp = admin_client.post("/api/assignments/return", json={"asset_id": asset.id})
        assert resp.status_code == 200
        assert resp.json["assignment"]["active"] is False
        assert resp.json["assignment"]["asset"]["status"] == "AVAILABLE"

        again = admin_client.post("/api/assignments/return", json={"asset_id": asset.id})
        assert again.status_code == 400

        assert [e.type for e in db.session.query(Event).order_by(Event.id)] == ["CHECKOUT", "RETURN"]

    @pytest.mark.parametrize("body,field", [
        ({"user_id": 1}, None),
        ({"asset_id": "abc", "user_id": 1}, "asset_id"),
        ({"asset_id": True, "user_id": 1}, "asset_id"),
        ({"asset_id": 1, "user_id": 1, "due_at": "next tuesday"}, "due_at"),
    ])
    def test_malformed_checkout(self, admin_client, body, field):
        resp = admin_client.post("/api/assignments/checkout", json=body)
        assert resp.status_code == 400
        if field:
            assert resp.json["field"] == field

    def test_past_due_date(self, admin_client, standard_user, asset):
        resp = admin_client.post(
            "/api/assignments/checkout",
            json={"asset_id": asset.id, "user_id": standard_user.id, "due_at": "2000-01-01T00:00:00Z"},
        )
        assert resp.status_code == 400
        assert resp.json["field"] == "due_at"


# =============================================================================
# SCOPED READS
# =============================================================================


class TestScopedReads:

    @pytest.fixture
    def two_checkouts(self, admin_client, standard_user, other_user, asset, second_asset):
        for asset_id, user_id in ((asset.id, standard_user.id), (second_asset.id, other_user.id)):
            resp = admin_client.post("/api/assignments/checkout", json={"asset_id": asset_id, "user_id": user_id})
            assert resp.status_code == 201

    def test_user_sees_only_own_assignments(self, user_client, other_user, two_checkouts):
        resp = user_client.get(f"/api/assignments/active?user_id={other_user.id}")

        assert resp.status_code == 200
        assert [a["user"]["user_tag_id"] for a in resp.json["items"]] == ["U001"]

    def test_admin_sees_all_assignments(self, admin_client, other_user, two_checkouts):
        assert admin_client.get("/api/assignments/active").json["count"] == 2
        filtered = admin_client.get(f"/api/assignments/active?user_id={other_user.id}").json
        assert [a["user"]["user_tag_id"] for a in filtered["items"]] == ["U002"]

    def test_user_sees_only_own_events(self, user_client, two_checkouts):
        resp = user_client.get("/api/events")

        assert resp.status_code == 200
        assert [e["user_tag_id"] for e in resp.json["items"]] == ["U001"]
        assert resp.json["items"][0]["asset"]["asset_tag_id"] == "A123"

    def test_admin_event_filters(self, admin_client, asset, two_checkouts):
        assert admin_client.get("/api/events").json["count"] == 2
        assert admin_client.get(f"/api/events?asset_id={asset.id}").json["count"] == 1
        assert admin_client.get("/api/events?type=RETURN").json["count"] == 0
        assert admin_client.get("/api/events?limit=1").json["count"] == 1
        assert admin_client.get("/api/events?limit=abc").status_code == 400
        assert admin_client.get("/api/events?asset_id=9999").status_code == 404


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
    assert resp.json["checks"]["database"]["status"] == "healthy"


def test_unknown_route_is_json(client, db_session):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert "error" in resp.json
