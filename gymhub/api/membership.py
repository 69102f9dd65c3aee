"""
Membership API: plan catalog and subscriptions.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import get_current_principal, require_owner
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.money import format_money
from gymhub.core.serialization import CamelModel, dump
from gymhub.features.memberships.service import LegacyTierSelection, PlanIdSelection, subscribe
from gymhub.features.plans.service import create_plan, delete_plan, list_plans, update_plan
from gymhub.models.plan import PlanCreate, PlanListing, PlanUpdate
from gymhub.models.user import Principal

router = APIRouter(prefix="/api/membership", tags=["membership"])


class LegacySubscribeRequest(CamelModel):
    plan: Optional[str] = None


def _listing(listing: PlanListing) -> Dict:
    payload = dump(listing.plan)
    payload["isPromoActive"] = listing.is_promo_active
    payload["discountedPrice"] = (
        format_money(listing.discounted_price) if listing.discounted_price is not None else None
    )
    return payload


@router.get("/plans")
def plans(db: Session = Depends(get_db), now: datetime = Depends(get_now)) -> Dict:
    return {"plans": [_listing(listing) for listing in list_plans(db, now=now)]}


@router.post("/subscribe")
def subscribe_legacy(
    body: LegacySubscribeRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    result = subscribe(db, principal.id, LegacyTierSelection(tier=body.plan or ""), now=now)
    return {"message": "Plan selected successfully", **dump(result, exclude_none=True)}


@router.post("/subscribe/{plan_id}")
def subscribe_plan(
    plan_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    result = subscribe(db, principal.id, PlanIdSelection(plan_id=plan_id), now=now)
    return {"message": "Plan selected successfully", **dump(result)}


@router.post("/plans", status_code=201)
def create(
    body: PlanCreate,
    _: Principal = Depends(require_owner),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    return {"message": "Plan created", "plan": dump(create_plan(db, body, now=now))}


@router.put("/plans/{plan_id}")
def update(
    plan_id: str,
    body: PlanUpdate,
    _: Principal = Depends(require_owner),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    return {"message": "Plan updated", "plan": dump(update_plan(db, plan_id, body, now=now))}


@router.delete("/plans/{plan_id}")
def delete(plan_id: str, _: Principal = Depends(require_owner), db: Session = Depends(get_db)) -> Dict:
    delete_plan(db, plan_id)
    return {"message": "Plan deleted"}
