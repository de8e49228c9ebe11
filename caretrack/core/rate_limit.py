"""Rate limiting configuration for the CareTrack API."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from caretrack.core.config import settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")
DEFAULT_LIMITS = (
    []
    if IS_TESTING or settings.RATE_LIMIT_API <= 0
    else [f"{settings.RATE_LIMIT_API}/minute"]
)

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://" if IS_TESTING else STORAGE_URI,
    default_limits=DEFAULT_LIMITS,
    enabled=not IS_TESTING,
)


def invites_limit() -> str:
    return f"{settings.RATE_LIMIT_INVITES}/minute"


def insights_limit() -> str:
    return f"{settings.RATE_LIMIT_INSIGHTS}/minute"


def reports_limit() -> str:
    return f"{settings.RATE_LIMIT_REPORTS}/minute"
