"""
Tests for subscribing members to plans (catalog plans and legacy tiers).
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from gymhub.core.database import users
from gymhub.core.errors import NotFoundError, ValidationError
from gymhub.features.memberships.service import (
    LegacyTierSelection,
    PlanIdSelection,
    add_months,
    subscribe,
)


def _user_row(db, user_id):
    return db.execute(select(users).where(users.c.id == user_id)).first()


def test_plan_without_duration_runs_thirty_days(db, make_user, make_plan, now):
    user_id = make_user()
    plan_id = make_plan(membership_plan="GOLD", plan_trainers_limit=2, plan_free_products=2)

    result = subscribe(db, user_id, PlanIdSelection(plan_id), now)

    assert result.plan_starts_at == now
    assert result.plan_ends_at == now + timedelta(days=30)
    assert result.limits.duration_days == 30
    row = _user_row(db, user_id)
    assert row.membership_plan == "GOLD"
    assert row.trainers_limit == 2
    assert row.free_products_per_month == 2


def test_plan_duration_is_used(db, make_user, make_plan, now):
    user_id = make_user()
    plan_id = make_plan(plan_duration_days=90)

    result = subscribe(db, user_id, PlanIdSelection(plan_id), now)
    assert result.plan_ends_at == now + timedelta(days=90)


def test_active_promotion_adds_bonus_once(db, make_user, make_plan, now):
    """The bonus is folded into the stored monthly allotment."""
    user_id = make_user()
    plan_id = make_plan(
        plan_free_products=2,
        discount_percent=80,
        discount_starts_at=now - timedelta(days=1),
        discount_ends_at=now + timedelta(days=1),
        free_product_bonus_count=3,
    )

    result = subscribe(db, user_id, PlanIdSelection(plan_id), now)

    assert result.promo.is_promo_active is True
    assert result.promo.bonus_free_products_granted == 3
    assert _user_row(db, user_id).free_products_per_month == 5


def test_promotion_bonus_without_plan_freebies(db, make_user, make_plan, now):
    user_id = make_user()
    plan_id = make_plan(
        discount_percent=70,
        discount_starts_at=now - timedelta(days=1),
        discount_ends_at=now + timedelta(days=1),
    )

    subscribe(db, user_id, PlanIdSelection(plan_id), now)
    assert _user_row(db, user_id).free_products_per_month == 1


def test_expired_promotion_grants_nothing(db, make_user, make_plan, now):
    user_id = make_user()
    plan_id = make_plan(
        plan_free_products=2,
        discount_percent=80,
        discount_starts_at=now - timedelta(days=10),
        discount_ends_at=now - timedelta(days=1),
    )

    result = subscribe(db, user_id, PlanIdSelection(plan_id), now)
    assert result.promo.is_promo_active is False
    assert _user_row(db, user_id).free_products_per_month == 2


def test_unset_plan_fields_leave_user_values(db, make_user, make_plan, now):
    user_id = make_user(trainers_limit=3, free_products_per_month=4, membership_plan="PREMIUM")
    plan_id = make_plan()

    subscribe(db, user_id, PlanIdSelection(plan_id), now)

    row = _user_row(db, user_id)
    assert row.trainers_limit == 3
    assert row.free_products_per_month == 4
    assert row.membership_plan == "PREMIUM"


def test_missing_plan(db, make_user, now):
    user_id = make_user()
    with pytest.raises(NotFoundError):
        subscribe(db, user_id, PlanIdSelection("nope"), now)


def test_missing_user(db, make_plan, now):
    plan_id = make_plan()
    with pytest.raises(NotFoundError):
        subscribe(db, "ghost", PlanIdSelection(plan_id), now)


def test_legacy_tier_limits(db, make_user, now):
    user_id = make_user()

    result = subscribe(db, user_id, LegacyTierSelection("premium"), now)

    assert result.plan == "PREMIUM"
    assert result.limits.months == 1
    row = _user_row(db, user_id)
    assert row.trainers_limit == 3
    assert row.free_products_per_month == 5
    assert row.membership_plan == "PREMIUM"


def test_legacy_tier_adds_one_calendar_month(db, make_user):
    user_id = make_user()
    start = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)

    result = subscribe(db, user_id, LegacyTierSelection("SILVER"), start)
    assert result.plan_ends_at == datetime(2026, 2, 28, 9, 0, tzinfo=timezone.utc)


def test_invalid_legacy_tier(db, make_user, now):
    user_id = make_user()
    with pytest.raises(ValidationError, match="Invalid plan"):
        subscribe(db, user_id, LegacyTierSelection("PLATINUM"), now)


def test_add_months_clamps_and_rolls_year():
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2026, 12, 15), 1) == datetime(2027, 1, 15)
    assert add_months(datetime(2026, 3, 31), 1) == datetime(2026, 4, 30)
