# Overview: Transaction boundary for custody writes; translates store failures into typed errors.

from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import InvalidRequest, StoreConflict


# (fragment found in the driver message, field, message). SQLite reports
# "table.column", PostgreSQL reports the constraint name.
_UNIQUE_FIELDS = (
    ("uq_assignments_active_asset", "asset_id", "Asset is already checked out"),
    ("assignments.asset_id", "asset_id", "Asset is already checked out"),
    ("uq_users_username", "username", "Duplicate value for username"),
    ("users.username", "username", "Duplicate value for username"),
    ("uq_users_user_tag_id", "user_tag_id", "Duplicate value for user_tag_id"),
    ("users.user_tag_id", "user_tag_id", "Duplicate value for user_tag_id"),
    ("uq_assets_asset_tag_id", "asset_tag_id", "Duplicate value for asset_tag_id"),
    ("assets.asset_tag_id", "asset_tag_id", "Duplicate value for asset_tag_id"),
    ("uq_session_tokens_token_hash", "token_hash", "Duplicate value for token_hash"),
    ("session_tokens.token_hash", "token_hash", "Duplicate value for token_hash"),
)


def lock_for_update(query):
    """
    Apply row-level locking for the custody critical section.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the partial unique
    index and Asset.version_id carry the guarantee.
    """
    return query.with_for_update()


def translate_integrity_error(exc: IntegrityError) -> InvalidRequest:
    """Map a constraint violation to an InvalidRequest naming the field."""
    text = str(getattr(exc, "orig", exc))
    for fragment, field, message in _UNIQUE_FIELDS:
        if fragment in text:
            return InvalidRequest(message, field=field)
    if "FOREIGN KEY" in text.upper():
        return InvalidRequest("Invalid relation reference in request")
    if "ck_assets" in text or "CHECK constraint" in text:
        return InvalidRequest("Asset status and holder are inconsistent")
    return InvalidRequest("Duplicate value for unique field")


@contextmanager
def atomic(label: str):
    """
    Run the enclosed block as one transaction and commit it.

    Any failure rolls back everything written inside the block. Store
    failures are translated; nothing is retried here:
    - IntegrityError                   -> InvalidRequest (names the field)
    - OperationalError, StaleDataError -> StoreConflict (retryable by caller)
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.info("%s rejected by constraint: %s", label, exc.orig)
        raise translate_integrity_error(exc) from exc
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        current_app.logger.warning("%s aborted by concurrent write: %s", label, exc)
        raise StoreConflict(f"{label} conflicted with a concurrent update; retry the request") from exc
    except Exception:
        db.session.rollback()
        raise
