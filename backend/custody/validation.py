from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import request

from .errors import InvalidRequest
from .time_utils import parse_iso_datetime


def json_body() -> dict:
    """Request JSON as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def require_fields(data: dict, *names: str) -> None:
    missing = [name for name in names if data.get(name) in (None, "")]
    if missing:
        raise InvalidRequest(f"{' and '.join(missing)} {'is' if len(missing) == 1 else 'are'} required")


def clean_str(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    """Trimmed string, None for null/blank."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequest(f"{field} must be a string", field=field)
    value = value.strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise InvalidRequest(f"{field} must be at most {max_length} characters", field=field)
    return value


def parse_id(value: Any, field: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        raise InvalidRequest(f"{field} must be an integer id", field=field)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidRequest(f"{field} must be an integer id", field=field)


def parse_optional_id(value: Any, field: str) -> int | None:
    if value in (None, ""):
        return None
    return parse_id(value, field)


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    raise InvalidRequest(f"{field} must be true or false", field=field)


def parse_datetime(value: Any, field: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InvalidRequest(f"{field} must be an ISO-8601 datetime", field=field)
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise InvalidRequest(f"{field} must be an ISO-8601 datetime", field=field)
