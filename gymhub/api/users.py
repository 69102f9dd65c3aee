"""
Member trainer selection (links and the legacy single pick).
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import get_current_principal
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.serialization import CamelModel, dump_all
from gymhub.features.trainers.service import (
    add_user_trainer,
    list_user_trainers,
    remove_user_trainer,
    select_trainer,
)
from gymhub.models.user import Principal

router = APIRouter(prefix="/api/users", tags=["users"])


class TrainerLinkRequest(CamelModel):
    trainer_id: Optional[str] = None


class SelectTrainerRequest(CamelModel):
    trainer_id: Optional[str] = None
    replace: bool = False


@router.post("/select-trainer")
def select(
    body: SelectTrainerRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    message = select_trainer(db, principal.id, body.trainer_id, replace=body.replace, now=now)
    return {"message": message}


@router.get("/trainers")
def my_trainers(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)) -> Dict:
    return {"trainers": dump_all(list_user_trainers(db, principal.id), exclude={"email"})}


@router.post("/trainers/add")
def add_trainer(
    body: TrainerLinkRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    added = add_user_trainer(db, principal.id, body.trainer_id, now=now)
    return {"message": "Trainer added" if added else "Trainer already added"}


@router.post("/trainers/remove")
def remove_trainer(
    body: TrainerLinkRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Dict:
    remove_user_trainer(db, principal.id, body.trainer_id)
    return {"message": "Trainer removed"}
