"""
Entitlement value objects.

UserEntitlement is the subset of a user record that membership plans write:
the plan window, the trainer limit and the monthly free-product allotment,
plus what has been used of that allotment in the current calendar month.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UserEntitlement(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    user_id: str
    membership_plan: Optional[str] = None
    plan_starts_at: Optional[datetime] = None
    plan_ends_at: Optional[datetime] = None
    trainers_limit: Optional[int] = None
    free_products_per_month: Optional[int] = None
    free_products_used: int = 0
    free_products_remaining: int = 0
    is_active: bool = False


class SubscriptionLimits(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    trainers_limit: Optional[int] = None
    free_products_per_month: Optional[int] = None
    duration_days: Optional[int] = None
    months: Optional[int] = None


class PromotionGrant(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    is_promo_active: bool
    discount_percent: Optional[int] = None
    bonus_free_products_granted: int = 0
    discount_starts_at: Optional[datetime] = None
    discount_ends_at: Optional[datetime] = None


class SubscriptionResult(BaseModel):
    """What a subscription wrote, for confirmation display."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    plan: Optional[str] = None
    plan_id: Optional[str] = None
    plan_starts_at: datetime
    plan_ends_at: datetime
    limits: SubscriptionLimits
    promo: Optional[PromotionGrant] = None
