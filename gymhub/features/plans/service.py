"""
gymhub/features/plans/service.py

Membership plan catalog.

Handles:
- Owner-managed plan CRUD
- Public listing decorated with live promotion state
- Fixed limits for the legacy PREMIUM/GOLD/SILVER tiers
"""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.database import new_id, plans
from gymhub.core.errors import NotFoundError, ValidationError
from gymhub.core.logging import log_event
from gymhub.core.money import to_money
from gymhub.features.plans.promotion import evaluate_promotion, promo_price
from gymhub.models.plan import Plan, PlanCreate, PlanListing, PlanUpdate


# Legacy tiers selectable by name; each runs for one calendar month
LEGACY_PLAN_LIMITS: Dict[str, Dict[str, int]] = {
    "PREMIUM": {"trainers_limit": 3, "free_products_per_month": 5, "months": 1},
    "GOLD": {"trainers_limit": 2, "free_products_per_month": 2, "months": 1},
    "SILVER": {"trainers_limit": 1, "free_products_per_month": 1, "months": 1},
}

_TEXT_FIELDS = ("name", "description", "image_url")


def _row_to_plan(row) -> Plan:
    return Plan(
        id=row.id,
        name=row.name,
        price=to_money(row.price),
        description=row.description,
        image_url=row.image_url,
        membership_plan=row.membership_plan,
        plan_duration_days=row.plan_duration_days,
        plan_trainers_limit=row.plan_trainers_limit,
        plan_free_products=row.plan_free_products,
        discount_percent=row.discount_percent,
        discount_starts_at=as_utc(row.discount_starts_at),
        discount_ends_at=as_utc(row.discount_ends_at),
        free_product_bonus_count=row.free_product_bonus_count,
        created_at=as_utc(row.created_at),
    )


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _validate_tier(tier: Optional[str]) -> None:
    if tier is not None and tier not in LEGACY_PLAN_LIMITS:
        raise ValidationError("Invalid plan. Use PREMIUM | GOLD | SILVER")


def _validate_discount_window(starts_at: Optional[datetime], ends_at: Optional[datetime]) -> None:
    if starts_at is not None and ends_at is not None and as_utc(starts_at) > as_utc(ends_at):
        raise ValidationError("Discount start must not be after discount end")


def list_plans(db: Session, now: Optional[datetime] = None) -> List[PlanListing]:
    """All plans, newest first, with promotion state evaluated at ``now``."""
    at = normalize_now(now)
    rows = db.execute(select(plans).order_by(plans.c.created_at.desc())).fetchall()
    listings = []
    for row in rows:
        plan = _row_to_plan(row)
        status = evaluate_promotion(plan, at)
        listings.append(
            PlanListing(plan=plan, is_promo_active=status.is_active, discounted_price=promo_price(plan, status))
        )
    return listings


def get_plan(db: Session, plan_id: str) -> Optional[Plan]:
    row = db.execute(select(plans).where(plans.c.id == plan_id)).first()
    if not row:
        return None
    return _row_to_plan(row)


def create_plan(db: Session, data: PlanCreate, now: Optional[datetime] = None) -> Plan:
    """
    Create a plan.

    Raises:
        ValidationError: Missing name or price, an unknown legacy tier, or a
            discount window that ends before it starts
    """
    name = _clean_text(data.name)
    if not name or data.price is None:
        raise ValidationError("Name and price are required")
    _validate_tier(data.membership_plan)
    _validate_discount_window(data.discount_starts_at, data.discount_ends_at)

    values = data.model_dump()
    for field in _TEXT_FIELDS:
        values[field] = _clean_text(values[field])
    values["price"] = to_money(data.price)
    values["id"] = new_id()
    values["created_at"] = normalize_now(now)
    values["updated_at"] = values["created_at"]

    db.execute(insert(plans).values(**values))
    db.commit()
    log_event("info", "plan.created", event_type="plan.created", extra={"plan_id": values["id"]})
    return get_plan(db, values["id"])


def update_plan(db: Session, plan_id: str, data: PlanUpdate, now: Optional[datetime] = None) -> Plan:
    """
    Apply the fields present in ``data``; explicit nulls clear nullable fields.

    Raises:
        NotFoundError: If the plan doesn't exist
        ValidationError: Name or price explicitly cleared, or the resulting
            discount window ends before it starts
    """
    current = get_plan(db, plan_id)
    if current is None:
        raise NotFoundError("Plan not found")

    changes = {field: getattr(data, field) for field in data.model_fields_set}
    for field in _TEXT_FIELDS:
        if field in changes:
            changes[field] = _clean_text(changes[field])
    if "name" in changes and not changes["name"]:
        raise ValidationError("Name cannot be empty")
    if "price" in changes:
        if changes["price"] is None:
            raise ValidationError("Price cannot be empty")
        changes["price"] = to_money(changes["price"])
    if "membership_plan" in changes:
        _validate_tier(changes["membership_plan"])
    _validate_discount_window(
        changes.get("discount_starts_at", current.discount_starts_at),
        changes.get("discount_ends_at", current.discount_ends_at),
    )

    if changes:
        changes["updated_at"] = normalize_now(now)
        db.execute(update(plans).where(plans.c.id == plan_id).values(**changes))
        db.commit()
    return get_plan(db, plan_id)


def delete_plan(db: Session, plan_id: str) -> None:
    result = db.execute(delete(plans).where(plans.c.id == plan_id))
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("Plan not found")
    db.commit()
    log_event("info", "plan.deleted", event_type="plan.deleted", extra={"plan_id": plan_id})
