"""
gymhub/features/plans/promotion.py

Promotional window evaluation for membership plans.

A promotion is a discount window on a plan. It only counts as active when
both bounds are set, the instant lies inside the window (bounds inclusive)
and the discount is deep enough to qualify as a promotion.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.money import ZERO, to_money
from gymhub.models.plan import Plan, PromotionStatus


PROMO_MIN_DISCOUNT_PERCENT = 70
DEFAULT_PROMO_BONUS = 1


def evaluate_promotion(plan: Plan, now: Optional[datetime] = None) -> PromotionStatus:
    """Report whether the plan's promotion is active at ``now``."""
    at = normalize_now(now)
    starts_at = as_utc(plan.discount_starts_at)
    ends_at = as_utc(plan.discount_ends_at)
    percent = plan.discount_percent

    is_active = (
        starts_at is not None
        and ends_at is not None
        and percent is not None
        and percent >= PROMO_MIN_DISCOUNT_PERCENT
        and starts_at <= at <= ends_at
    )

    bonus = 0
    if is_active:
        bonus = plan.free_product_bonus_count if plan.free_product_bonus_count is not None else DEFAULT_PROMO_BONUS

    return PromotionStatus(
        is_active=is_active,
        discount_percent=percent,
        bonus_free_products=bonus,
        starts_at=starts_at,
        ends_at=ends_at,
    )


def discounted_price(price: Decimal, percent: int) -> Decimal:
    """Display price after a percentage discount, floored at zero."""
    factor = Decimal(1) - Decimal(percent) / Decimal(100)
    return max(ZERO, to_money(to_money(price) * factor))


def promo_price(plan: Plan, status: PromotionStatus) -> Optional[Decimal]:
    """Discounted price while the promotion is active, else None."""
    if not status.is_active or status.discount_percent is None:
        return None
    return discounted_price(plan.price, status.discount_percent)
