"""
Member dashboard and owner stats.
"""
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import get_current_principal, require_owner
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.serialization import dump
from gymhub.features.users.service import get_dashboard, get_owner_stats
from gymhub.models.user import Principal

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("")
def dashboard(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    """Profile, membership window, trainers and this month's free products."""
    view = get_dashboard(db, principal.id, now=now)
    user = dump(view.user)
    user["trainer"] = dump(view.trainer) if view.trainer else None
    user["trainers"] = [dump(trainer) for trainer in view.trainers]
    user["entitlement"] = dump(view.entitlement)
    return {"message": f"Welcome {principal.name}", "user": user}


@router.get("/owner/stats")
def owner_stats(_: Principal = Depends(require_owner), db: Session = Depends(get_db)) -> Dict:
    return dump(get_owner_stats(db))
