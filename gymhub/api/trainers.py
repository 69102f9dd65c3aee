"""
Public trainer roster; owners manage it.
"""
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import require_owner
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.serialization import dump, dump_all
from gymhub.features.trainers.service import (
    create_trainer,
    delete_trainer,
    get_trainer,
    list_trainers,
    update_trainer,
)
from gymhub.models.trainer import TrainerCreate, TrainerUpdate
from gymhub.models.user import Principal

router = APIRouter(prefix="/api/trainers", tags=["trainers"])

# Portal credentials never leave the service
_PRIVATE_FIELDS = {"email"}


@router.get("")
def list_all(db: Session = Depends(get_db)) -> Dict:
    return {"trainers": dump_all(list_trainers(db), exclude=_PRIVATE_FIELDS)}


@router.get("/{trainer_id}")
def get_one(trainer_id: str, db: Session = Depends(get_db)) -> Dict:
    return {"trainer": dump(get_trainer(db, trainer_id), exclude=_PRIVATE_FIELDS)}


@router.post("", status_code=201)
def create(
    body: TrainerCreate,
    _: Principal = Depends(require_owner),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    trainer = create_trainer(db, body, now=now)
    return {"message": "Trainer created", "trainer": dump(trainer)}


@router.put("/{trainer_id}")
def update(
    trainer_id: str,
    body: TrainerUpdate,
    _: Principal = Depends(require_owner),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
) -> Dict:
    trainer = update_trainer(db, trainer_id, body, now=now)
    return {"message": "Trainer updated", "trainer": dump(trainer)}


@router.delete("/{trainer_id}")
def delete(trainer_id: str, _: Principal = Depends(require_owner), db: Session = Depends(get_db)) -> Dict:
    delete_trainer(db, trainer_id)
    return {"message": "Trainer deleted"}
