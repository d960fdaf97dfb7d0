from .auth import User, SessionToken, ROLE_ADMIN, ROLE_USER, ROLES
from .custody import (
    Asset,
    Assignment,
    ASSET_STATUS_AVAILABLE,
    ASSET_STATUS_CHECKED_OUT,
    ASSET_STATUS_MISSING,
    ASSET_STATUS_MAINTENANCE,
    ASSET_STATUS_RETIRED,
    ASSET_STATUSES,
)
from .events import (
    Event,
    EVENT_CHECKOUT,
    EVENT_RETURN,
    EVENT_ENTER,
    EVENT_EXIT,
    EVENT_CHECKIN,
    EVENT_SEED,
    EVENT_TYPES,
)

__all__ = [
    'User', 'SessionToken', 'ROLE_ADMIN', 'ROLE_USER', 'ROLES',
    'Asset', 'Assignment',
    'ASSET_STATUS_AVAILABLE', 'ASSET_STATUS_CHECKED_OUT', 'ASSET_STATUS_MISSING',
    'ASSET_STATUS_MAINTENANCE', 'ASSET_STATUS_RETIRED', 'ASSET_STATUSES',
    'Event', 'EVENT_CHECKOUT', 'EVENT_RETURN', 'EVENT_ENTER', 'EVENT_EXIT',
    'EVENT_CHECKIN', 'EVENT_SEED', 'EVENT_TYPES',
]
