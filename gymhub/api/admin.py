"""
Admin API: owner accounts and the admin's own profile.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import require_admin
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.serialization import CamelModel
from gymhub.features.users.service import create_owner, get_user, list_owners, update_profile
from gymhub.models.user import Principal, User

router = APIRouter(prefix="/api/admin", tags=["admin"])


class OwnerCreateRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None


def _summary(user: User) -> Dict:
    return {"id": user.id, "name": user.name, "email": user.email}


@router.get("/owners")
def owners(_: Principal = Depends(require_admin), db: Session = Depends(get_db)) -> Dict:
    return {
        "owners": [
            {**_summary(owner), "createdAt": owner.created_at.isoformat() if owner.created_at else None}
            for owner in list_owners(db)
        ]
    }


@router.post("/owners", status_code=201)
def add_owner(
    body: OwnerCreateRequest,
    _: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    owner = create_owner(db, body.name, body.email, body.password, now=now)
    return {"message": "Owner created", "owner": _summary(owner)}


@router.get("/profile")
def profile(principal: Principal = Depends(require_admin), db: Session = Depends(get_db)) -> Dict:
    user = get_user(db, principal.id)
    return {**_summary(user), "role": user.role.value}


@router.put("/profile")
def edit_profile(
    body: ProfileUpdateRequest,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    user = update_profile(db, principal.id, name=body.name, email=body.email, now=now)
    return {"message": "Profile updated", "admin": _summary(user)}
