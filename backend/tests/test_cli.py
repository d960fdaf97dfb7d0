"""
CLI command tests (system init, users, maintenance).
"""

from datetime import timedelta

from custody.extensions import db
from custody.models import SessionToken, User, ROLE_ADMIN
from custody.services import credential_service, session_service
from custody.time_utils import utcnow


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "Tool.Keeper",
        "--password", "Keeper-Pass-1",
        "--name", "Tool Keeper",
        "--tag", "U500",
        "--role", "admin",
    ])

    assert result.exit_code == 0, result.output
    assert "PASS Created user: tool.keeper" in result.output
    user = db.session.query(User).filter_by(username="tool.keeper").one()
    assert user.role == ROLE_ADMIN
    assert credential_service.verify("tool.keeper", "Keeper-Pass-1")

    listing = runner.invoke(args=["users", "list"])
    assert listing.exit_code == 0
    assert "tool.keeper" in listing.output
    assert "Total: 1 users" in listing.output


def test_users_create_duplicate_fails(app, standard_user):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--username", "jdoe",
        "--password", "whatever",
        "--name", "Dup",
        "--tag", "U900",
    ])

    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_system_init_bootstraps_admin_once(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "BOOTSTRAP_ADMIN_USERNAME", "root")
    monkeypatch.setitem(app.config, "BOOTSTRAP_ADMIN_PASSWORD", "Root-Pass-1")
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0, first.output
    assert "PASS Created admin: root" in first.output
    assert "Admin already present" in second.output
    assert db.session.query(User).filter_by(role=ROLE_ADMIN).count() == 1


def test_system_init_without_bootstrap_config(app, db_session, monkeypatch):
    monkeypatch.setitem(app.config, "BOOTSTRAP_ADMIN_USERNAME", None)
    result = app.test_cli_runner().invoke(args=["system", "init"])

    assert result.exit_code == 0
    assert "SKIP" in result.output
    assert db.session.query(User).count() == 0


def test_cleanup_sessions(app, standard_user):
    expired, _ = session_service.issue(standard_user.id)
    session_service.issue(standard_user.id)
    expired.expires_at = utcnow() - timedelta(hours=1)
    db.session.commit()

    result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])

    assert result.exit_code == 0
    assert "Deleted 1 expired sessions." in result.output
    assert db.session.query(SessionToken).count() == 1
