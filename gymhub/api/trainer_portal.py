"""
Trainer login and the trainer portal.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import require_trainer
from gymhub.core.database import get_db
from gymhub.core.security import sign_token
from gymhub.core.serialization import CamelModel, dump_all
from gymhub.features.notifications.mailer import Mailer, get_mailer
from gymhub.features.trainers.portal import list_assigned_users, send_plan_email, unassign_user
from gymhub.features.trainers.service import authenticate_trainer
from gymhub.models.user import Principal, Role

auth_router = APIRouter(prefix="/api/trainer/auth", tags=["trainer"])
router = APIRouter(prefix="/api/trainer", tags=["trainer"])

_MEMBER_FIELDS = {"id", "name", "email", "height_cm", "weight_kg", "place", "bio", "created_at"}


class TrainerLoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


@auth_router.post("/login")
def trainer_login(body: TrainerLoginRequest, db: Session = Depends(get_db)) -> Dict:
    trainer = authenticate_trainer(db, body.email, body.password)
    return {
        "message": "Login successful",
        "token": sign_token(trainer.id, trainer.name, Role.TRAINER),
        "trainer": {"id": trainer.id, "name": trainer.name, "email": trainer.email},
    }


@router.get("/users")
def assigned_users(principal: Principal = Depends(require_trainer), db: Session = Depends(get_db)) -> Dict:
    return {"users": dump_all(list_assigned_users(db, principal.id), include=_MEMBER_FIELDS)}


@router.delete("/users/{user_id}")
def unassign(user_id: str, principal: Principal = Depends(require_trainer), db: Session = Depends(get_db)) -> Dict:
    unassign_user(db, principal.id, user_id)
    return {"message": "User unassigned"}


@router.post("/users/{user_id}/plan")
def email_plan(
    user_id: str,
    principal: Principal = Depends(require_trainer),
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
) -> Dict:
    plan = send_plan_email(db, principal.id, user_id, mailer)
    return {
        "message": "Plan emailed successfully",
        "planType": plan.plan_type.value,
        "bmi": round(plan.bmi, 1) if plan.bmi else None,
    }
