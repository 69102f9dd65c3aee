"""
Tests for the plan catalog, subscriptions and the member dashboard.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from gymhub.core.errors import ValidationError
from gymhub.features.memberships.service import PlanIdSelection, subscribe
from gymhub.features.plans.service import create_plan, update_plan
from gymhub.models.plan import PlanCreate, PlanUpdate
from gymhub.models.user import Role


def test_catalog_flags_active_promotions(client, make_plan, now):
    make_plan(
        name="Summer Blast",
        price=Decimal("2000.00"),
        discount_percent=75,
        discount_starts_at=now - timedelta(days=1),
        discount_ends_at=now + timedelta(days=1),
    )

    plans = client.get("/api/membership/plans").json()["plans"]

    assert plans[0]["name"] == "Summer Blast"
    assert plans[0]["isPromoActive"] is True
    assert plans[0]["discountedPrice"] == "500.00"


def test_catalog_without_promotion(client, make_plan):
    make_plan(discount_percent=20)
    plan = client.get("/api/membership/plans").json()["plans"][0]
    assert plan["isPromoActive"] is False
    assert plan["discountedPrice"] is None


def test_subscribe_by_plan_id(client, make_user, make_plan, auth_headers, now):
    user_id = make_user()
    plan_id = make_plan(membership_plan="GOLD", plan_trainers_limit=2, plan_free_products=2, plan_duration_days=60)

    resp = client.post(f"/api/membership/subscribe/{plan_id}", headers=auth_headers(user_id))

    assert resp.status_code == 200
    body = resp.json()
    assert body["planId"] == plan_id
    assert body["limits"]["durationDays"] == 60
    assert body["promo"]["isPromoActive"] is False

    entitlement = client.get("/api/dashboard", headers=auth_headers(user_id)).json()["user"]["entitlement"]
    assert entitlement["isActive"] is True
    assert entitlement["trainersLimit"] == 2
    assert entitlement["freeProductsRemaining"] == 2


def test_subscribe_legacy_tier(client, make_user, auth_headers):
    user_id = make_user()
    resp = client.post("/api/membership/subscribe", json={"plan": "gold"}, headers=auth_headers(user_id))
    assert resp.status_code == 200
    assert resp.json()["plan"] == "GOLD"
    assert resp.json()["limits"]["months"] == 1


def test_subscribe_legacy_invalid_tier(client, make_user, auth_headers):
    resp = client.post("/api/membership/subscribe", json={"plan": "BRONZE"}, headers=auth_headers(make_user()))
    assert resp.status_code == 400


def test_subscribe_unknown_plan(client, make_user, auth_headers):
    resp = client.post("/api/membership/subscribe/missing", headers=auth_headers(make_user()))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Plan not found"


def test_owner_manages_plans(client, make_user, auth_headers):
    owner = make_user(role=Role.OWNER)
    headers = auth_headers(owner, Role.OWNER)

    created = client.post(
        "/api/membership/plans",
        json={"name": "Quarterly", "price": 2500, "planDurationDays": 90, "membershipPlan": "SILVER"},
        headers=headers,
    )
    assert created.status_code == 201
    plan_id = created.json()["plan"]["id"]
    assert created.json()["plan"]["price"] == "2500.00"

    updated = client.put(f"/api/membership/plans/{plan_id}", json={"description": "Three months"}, headers=headers)
    assert updated.json()["plan"]["description"] == "Three months"
    assert updated.json()["plan"]["planDurationDays"] == 90

    assert client.delete(f"/api/membership/plans/{plan_id}", headers=headers).status_code == 200
    assert client.delete(f"/api/membership/plans/{plan_id}", headers=headers).status_code == 404


def test_plan_requires_name_and_price(client, make_user, auth_headers):
    owner = make_user(role=Role.OWNER)
    resp = client.post("/api/membership/plans", json={"name": "Free?"}, headers=auth_headers(owner, Role.OWNER))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Name and price are required"


def test_dashboard_lists_trainers(client, db, active_member, make_trainer, auth_headers, now):
    from gymhub.features.trainers.service import add_user_trainer, select_trainer

    user_id = active_member()
    legacy, linked = make_trainer(name="Legacy"), make_trainer(name="Linked")
    select_trainer(db, user_id, legacy, now=now)
    add_user_trainer(db, user_id, linked, now)

    user = client.get("/api/dashboard", headers=auth_headers(user_id)).json()["user"]

    assert user["trainer"]["name"] == "Legacy"
    assert [t["name"] for t in user["trainers"]] == ["Linked"]


@pytest.mark.parametrize(
    "field,value",
    [
        ("planDurationDays", 0),
        ("planDurationDays", -5),
        ("planTrainersLimit", -1),
        ("planFreeProducts", -2),
        ("freeProductBonusCount", -1),
        ("discountPercent", 101),
        ("discountPercent", -10),
        ("price", "-1.00"),
    ],
)
def test_create_plan_rejects_out_of_range_numbers(client, make_user, auth_headers, field, value):
    owner = make_user(role=Role.OWNER)
    resp = client.post(
        "/api/membership/plans",
        json={"name": "Broken", "price": "10.00", field: value},
        headers=auth_headers(owner, Role.OWNER),
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"
    assert client.get("/api/membership/plans").json()["plans"] == []


def test_update_plan_rejects_negative_duration(client, make_user, make_plan, auth_headers):
    owner = make_user(role=Role.OWNER)
    plan_id = make_plan(plan_duration_days=30)

    resp = client.put(
        f"/api/membership/plans/{plan_id}",
        json={"planDurationDays": -5},
        headers=auth_headers(owner, Role.OWNER),
    )

    assert resp.status_code == 400
    assert client.get("/api/membership/plans").json()["plans"][0]["planDurationDays"] == 30


def test_create_plan_rejects_inverted_discount_window(db, now):
    data = PlanCreate(
        name="Backwards",
        price=Decimal("10"),
        discount_percent=80,
        discount_starts_at=now + timedelta(days=2),
        discount_ends_at=now,
    )
    with pytest.raises(ValidationError, match="Discount start"):
        create_plan(db, data, now=now)


def test_update_plan_checks_window_against_stored_bounds(db, make_plan, now):
    plan_id = make_plan(discount_percent=80, discount_starts_at=now, discount_ends_at=now + timedelta(days=5))

    with pytest.raises(ValidationError, match="Discount start"):
        update_plan(db, plan_id, PlanUpdate(discount_ends_at=now - timedelta(days=1)), now=now)

    moved = update_plan(db, plan_id, PlanUpdate(discount_ends_at=now + timedelta(days=1)), now=now)
    assert moved.discount_ends_at == now + timedelta(days=1)


def test_subscription_window_always_moves_forward(db, make_user, now):
    user_id = make_user()
    plan = create_plan(db, PlanCreate(name="Week Pass", price=Decimal("10"), plan_duration_days=1), now=now)

    result = subscribe(db, user_id, PlanIdSelection(plan.id), now=now)

    assert result.plan_ends_at == now + timedelta(days=1)
    assert result.plan_ends_at > result.plan_starts_at
