"""
gymhub/features/entitlements/service.py

Entitlement resolution for members.

Handles:
- Calendar month windows for free-product accounting
- Free products used/remaining, always recomputed from order history
- Plan activity and trainer-selection limit checks
"""

from datetime import datetime, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.config import settings
from gymhub.core.database import order_items, orders, users
from gymhub.core.errors import ConflictError, NotFoundError, PermissionError
from gymhub.models.entitlement import UserEntitlement


def month_window(now: Optional[datetime] = None, tz: Optional[str] = None) -> Tuple[datetime, datetime]:
    """
    Return ``[month_start, month_end)`` for the calendar month containing ``now``.

    The month is taken in the configured server timezone; both bounds are
    returned as UTC instants so they compare directly with stored timestamps.
    """
    zone = ZoneInfo(tz or settings.APP_TIMEZONE)
    local = normalize_now(now).astimezone(zone)
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def count_units_used(db: Session, user_id: str, month_start: datetime, month_end: datetime) -> int:
    """Sum of ordered units across the user's orders created in the window."""
    total = db.execute(
        select(func.coalesce(func.sum(order_items.c.quantity), 0))
        .select_from(order_items.join(orders, order_items.c.order_id == orders.c.id))
        .where(orders.c.user_id == user_id)
        .where(orders.c.created_at >= month_start)
        .where(orders.c.created_at < month_end)
    ).scalar()
    return int(total or 0)


def _remaining(db: Session, user_id: str, allotment: Optional[int], now: datetime) -> Tuple[int, int]:
    if not allotment or allotment <= 0:
        return 0, 0
    month_start, month_end = month_window(now)
    used = count_units_used(db, user_id, month_start, month_end)
    return used, max(0, allotment - used)


def get_free_products_remaining(db: Session, user_id: str, now: Optional[datetime] = None) -> int:
    allotment = db.execute(
        select(users.c.free_products_per_month).where(users.c.id == user_id)
    ).scalar()
    _, remaining = _remaining(db, user_id, allotment, normalize_now(now))
    return remaining


def is_plan_active(plan_ends_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    ends_at = as_utc(plan_ends_at)
    if ends_at is None:
        return False
    return normalize_now(now) < ends_at


def entitlement_from_row(db: Session, row, now: datetime) -> UserEntitlement:
    used, remaining = _remaining(db, row.id, row.free_products_per_month, now)
    return UserEntitlement(
        user_id=row.id,
        membership_plan=row.membership_plan,
        plan_starts_at=as_utc(row.plan_starts_at),
        plan_ends_at=as_utc(row.plan_ends_at),
        trainers_limit=row.trainers_limit,
        free_products_per_month=row.free_products_per_month,
        free_products_used=used,
        free_products_remaining=remaining,
        is_active=is_plan_active(row.plan_ends_at, now),
    )


def get_entitlement(db: Session, user_id: str, now: Optional[datetime] = None) -> UserEntitlement:
    """
    Resolve a user's current entitlement.

    Raises:
        NotFoundError: If the user doesn't exist
    """
    row = db.execute(select(users).where(users.c.id == user_id)).first()
    if not row:
        raise NotFoundError("User not found")
    return entitlement_from_row(db, row, normalize_now(now))


def ensure_can_select_trainer(entitlement: UserEntitlement, current_count: int) -> None:
    """
    Check that one more trainer fits the user's plan.

    Raises:
        PermissionError: No active plan, or the plan grants no trainers
        ConflictError: The trainer limit is already reached
    """
    if not entitlement.is_active:
        raise PermissionError("An active membership plan is required to select trainers.")
    limit = entitlement.trainers_limit
    if not limit or limit <= 0:
        raise PermissionError("Your plan does not allow selecting trainers. Please upgrade your membership.")
    if current_count >= limit:
        raise ConflictError(f"You can select up to {limit} trainer(s).")
