"""
Membership plan catalog models.

A plan carries its price and duration, the entitlements it grants (trainer
limit, free products per month) and an optional promotional window.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Plan(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    price: Decimal
    description: Optional[str] = None
    image_url: Optional[str] = None
    membership_plan: Optional[str] = None
    plan_duration_days: Optional[int] = None
    plan_trainers_limit: Optional[int] = None
    plan_free_products: Optional[int] = None
    discount_percent: Optional[int] = None
    discount_starts_at: Optional[datetime] = None
    discount_ends_at: Optional[datetime] = None
    free_product_bonus_count: Optional[int] = None
    created_at: Optional[datetime] = None


class PromotionStatus(BaseModel):
    """Outcome of evaluating a plan's promotional window at an instant."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    is_active: bool
    discount_percent: Optional[int] = None
    bonus_free_products: int = 0
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None


class PlanListing(BaseModel):
    """Plan as shown in the public catalog."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    plan: Plan
    is_promo_active: bool
    discounted_price: Optional[Decimal] = None


class PlanCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    membership_plan: Optional[str] = None
    plan_duration_days: Optional[int] = Field(default=None, ge=1)
    plan_trainers_limit: Optional[int] = Field(default=None, ge=0)
    plan_free_products: Optional[int] = Field(default=None, ge=0)
    discount_percent: Optional[int] = Field(default=None, ge=0, le=100)
    discount_starts_at: Optional[datetime] = None
    discount_ends_at: Optional[datetime] = None
    free_product_bonus_count: Optional[int] = Field(default=None, ge=0)


class PlanUpdate(PlanCreate):
    """Partial update; only fields present in ``model_fields_set`` are applied."""
