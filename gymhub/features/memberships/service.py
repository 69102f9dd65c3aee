"""
gymhub/features/memberships/service.py

Subscription manager.

A user picks a plan either by catalog id or by legacy tier name. Both paths
resolve to the same entitlement write: plan window, trainer limit and the
monthly free-product allotment on the user row.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from gymhub.core.clock import normalize_now
from gymhub.core.database import users
from gymhub.core.errors import NotFoundError, ValidationError
from gymhub.core.logging import log_event
from gymhub.features.plans.promotion import evaluate_promotion
from gymhub.features.plans.service import LEGACY_PLAN_LIMITS, get_plan
from gymhub.models.entitlement import PromotionGrant, SubscriptionLimits, SubscriptionResult


DEFAULT_PLAN_DURATION_DAYS = 30


@dataclass(frozen=True)
class PlanIdSelection:
    plan_id: str


@dataclass(frozen=True)
class LegacyTierSelection:
    tier: str


PlanSelection = Union[PlanIdSelection, LegacyTierSelection]


def add_months(value: datetime, months: int) -> datetime:
    """Same wall-clock time ``months`` later, clamping the day to the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _write_entitlement(db: Session, user_id: str, changes: Dict[str, Any]) -> None:
    result = db.execute(update(users).where(users.c.id == user_id).values(**changes))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("User not found")
    db.commit()


def _subscribe_by_plan_id(db: Session, user_id: str, selection: PlanIdSelection, now: datetime) -> SubscriptionResult:
    plan = get_plan(db, selection.plan_id)
    if plan is None:
        raise NotFoundError("Plan not found")

    duration_days = plan.plan_duration_days if plan.plan_duration_days is not None else DEFAULT_PLAN_DURATION_DAYS
    ends_at = now + timedelta(days=duration_days)
    promo = evaluate_promotion(plan, now)

    changes: Dict[str, Any] = {"plan_starts_at": now, "plan_ends_at": ends_at, "updated_at": now}
    if plan.membership_plan:
        changes["membership_plan"] = plan.membership_plan
    if plan.plan_trainers_limit is not None:
        changes["trainers_limit"] = plan.plan_trainers_limit
    if plan.plan_free_products is not None:
        # The promotional bonus is folded into the allotment once, here
        changes["free_products_per_month"] = plan.plan_free_products + promo.bonus_free_products
    elif promo.is_active:
        changes["free_products_per_month"] = promo.bonus_free_products

    _write_entitlement(db, user_id, changes)

    return SubscriptionResult(
        plan=plan.membership_plan,
        plan_id=plan.id,
        plan_starts_at=now,
        plan_ends_at=ends_at,
        limits=SubscriptionLimits(
            trainers_limit=plan.plan_trainers_limit,
            free_products_per_month=plan.plan_free_products,
            duration_days=duration_days,
        ),
        promo=PromotionGrant(
            is_promo_active=promo.is_active,
            discount_percent=promo.discount_percent,
            bonus_free_products_granted=promo.bonus_free_products,
            discount_starts_at=promo.starts_at,
            discount_ends_at=promo.ends_at,
        ),
    )


def _subscribe_by_tier(db: Session, user_id: str, selection: LegacyTierSelection, now: datetime) -> SubscriptionResult:
    limits = LEGACY_PLAN_LIMITS.get((selection.tier or "").upper())
    if limits is None:
        raise ValidationError("Invalid plan. Use PREMIUM | GOLD | SILVER")
    tier = selection.tier.upper()

    ends_at = add_months(now, limits["months"])
    _write_entitlement(
        db,
        user_id,
        {
            "membership_plan": tier,
            "plan_starts_at": now,
            "plan_ends_at": ends_at,
            "trainers_limit": limits["trainers_limit"],
            "free_products_per_month": limits["free_products_per_month"],
            "updated_at": now,
        },
    )

    return SubscriptionResult(
        plan=tier,
        plan_starts_at=now,
        plan_ends_at=ends_at,
        limits=SubscriptionLimits(
            trainers_limit=limits["trainers_limit"],
            free_products_per_month=limits["free_products_per_month"],
            months=limits["months"],
        ),
    )


def subscribe(db: Session, user_id: str, selection: PlanSelection, now: Optional[datetime] = None) -> SubscriptionResult:
    """
    Put a user on a plan starting at ``now``.

    Raises:
        NotFoundError: Unknown plan id or user
        ValidationError: Unknown legacy tier
    """
    at = normalize_now(now)
    if db.execute(select(users.c.id).where(users.c.id == user_id)).first() is None:
        raise NotFoundError("User not found")

    if isinstance(selection, PlanIdSelection):
        result = _subscribe_by_plan_id(db, user_id, selection, at)
    elif isinstance(selection, LegacyTierSelection):
        result = _subscribe_by_tier(db, user_id, selection, at)
    else:
        raise ValidationError("Unsupported plan selection")

    log_event(
        "info",
        "subscription.updated",
        user_id=user_id,
        event_type="subscription.updated",
        extra={"plan_id": result.plan_id, "tier": result.plan, "ends_at": result.plan_ends_at.isoformat()},
    )
    return result
