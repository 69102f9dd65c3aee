"""Time source shared by services and routes.

Routes take ``now`` through the ``get_now`` dependency so tests can pin the
clock with ``app.dependency_overrides``.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_now(now: Optional[datetime]) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if now is None:
        return utcnow()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def get_now() -> datetime:
    """FastAPI dependency returning the current instant."""
    return utcnow()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to timestamps read back without tzinfo (SQLite)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
