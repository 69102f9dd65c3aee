"""
gymhub/features/trainers/service.py

Trainer roster and member trainer selection.

Handles:
- Owner-managed trainer CRUD and trainer portal login
- Member trainer links (many-to-many), bounded by the plan's trainer limit
- Legacy single-trainer selection on the user row
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.database import new_id, trainers, user_trainers, users
from gymhub.core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from gymhub.core.logging import log_event
from gymhub.core.security import hash_password, verify_password
from gymhub.features.entitlements.service import ensure_can_select_trainer, entitlement_from_row
from gymhub.models.trainer import Trainer, TrainerCreate, TrainerUpdate


def row_to_trainer(row) -> Trainer:
    return Trainer(
        id=row.id,
        name=row.name,
        qualification=row.qualification,
        image_url=row.image_url,
        champion_details=row.champion_details,
        email=row.email,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def list_trainers(db: Session) -> List[Trainer]:
    rows = db.execute(select(trainers).order_by(trainers.c.created_at.desc())).fetchall()
    return [row_to_trainer(row) for row in rows]


def get_trainer(db: Session, trainer_id: str) -> Trainer:
    row = db.execute(select(trainers).where(trainers.c.id == trainer_id)).first()
    if not row:
        raise NotFoundError("Trainer not found")
    return row_to_trainer(row)


def create_trainer(db: Session, data: TrainerCreate, now: Optional[datetime] = None) -> Trainer:
    """
    Raises:
        ConflictError: Trainer email already in use
    """
    email = data.email.lower() if data.email else None
    if email and db.execute(select(trainers.c.id).where(trainers.c.email == email)).first():
        raise ConflictError("Trainer email already in use")

    trainer_id = new_id()
    at = normalize_now(now)
    try:
        db.execute(
            insert(trainers).values(
                id=trainer_id,
                name=data.name,
                qualification=data.qualification,
                image_url=str(data.image_url) if data.image_url else None,
                champion_details=data.champion_details,
                email=email,
                password_hash=hash_password(data.password) if data.password else None,
                created_at=at,
                updated_at=at,
            )
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Trainer email already in use")

    log_event("info", "trainer.created", event_type="trainer.created", extra={"trainer_id": trainer_id})
    return get_trainer(db, trainer_id)


def update_trainer(db: Session, trainer_id: str, data: TrainerUpdate, now: Optional[datetime] = None) -> Trainer:
    get_trainer(db, trainer_id)

    changes = {field: getattr(data, field) for field in data.model_fields_set}
    for required in ("name", "qualification"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be empty")
    if "image_url" in changes and changes["image_url"] is not None:
        changes["image_url"] = str(changes["image_url"])

    if changes:
        changes["updated_at"] = normalize_now(now)
        db.execute(update(trainers).where(trainers.c.id == trainer_id).values(**changes))
        db.commit()
    return get_trainer(db, trainer_id)


def delete_trainer(db: Session, trainer_id: str) -> None:
    get_trainer(db, trainer_id)
    try:
        db.execute(update(users).where(users.c.trainer_id == trainer_id).values(trainer_id=None))
        db.execute(delete(user_trainers).where(user_trainers.c.trainer_id == trainer_id))
        db.execute(delete(trainers).where(trainers.c.id == trainer_id))
        db.commit()
    except Exception:
        db.rollback()
        raise


def authenticate_trainer(db: Session, email: Optional[str], password: Optional[str]) -> Trainer:
    """
    Raises:
        ValidationError: Missing email or password
        UnauthorizedError: Unknown trainer, no portal password, or wrong password
    """
    if not email or not password:
        raise ValidationError("Email and password are required")
    row = db.execute(select(trainers).where(func.lower(trainers.c.email) == email.strip().lower())).first()
    if not row or not verify_password(password, row.password_hash):
        raise UnauthorizedError("Invalid email or password")
    return row_to_trainer(row)


def _load_user_row(db: Session, user_id: str, lock: bool = False):
    query = select(users).where(users.c.id == user_id)
    if lock:
        query = query.with_for_update()
    row = db.execute(query).first()
    if not row:
        raise NotFoundError("User not found")
    return row


def list_user_trainers(db: Session, user_id: str) -> List[Trainer]:
    rows = db.execute(
        select(trainers)
        .select_from(user_trainers.join(trainers, user_trainers.c.trainer_id == trainers.c.id))
        .where(user_trainers.c.user_id == user_id)
        .order_by(user_trainers.c.created_at.desc())
    ).fetchall()
    return [row_to_trainer(row) for row in rows]


def add_user_trainer(db: Session, user_id: str, trainer_id: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Link a trainer to a member. Returns False when the link already existed.

    Raises:
        ValidationError: Missing trainer id
        NotFoundError: Unknown trainer
        PermissionError: No active plan, or the plan grants no trainers
        ConflictError: Trainer limit reached
    """
    if not trainer_id:
        raise ValidationError("trainerId is required")
    get_trainer(db, trainer_id)
    at = normalize_now(now)

    try:
        user_row = _load_user_row(db, user_id, lock=True)
        already_linked = db.execute(
            select(user_trainers.c.id)
            .where(user_trainers.c.user_id == user_id)
            .where(user_trainers.c.trainer_id == trainer_id)
        ).first()
        if already_linked:
            db.rollback()
            return False

        current_count = db.execute(
            select(func.count()).select_from(user_trainers).where(user_trainers.c.user_id == user_id)
        ).scalar()
        ensure_can_select_trainer(entitlement_from_row(db, user_row, at), current_count or 0)

        db.execute(
            insert(user_trainers).values(id=new_id(), user_id=user_id, trainer_id=trainer_id, created_at=at)
        )
        db.commit()
    except IntegrityError:
        # Lost a race with an identical insert; the link exists either way
        db.rollback()
        return False
    except Exception:
        db.rollback()
        raise

    log_event("info", "trainer.linked", user_id=user_id, event_type="trainer.linked", extra={"trainer_id": trainer_id})
    return True


def remove_user_trainer(db: Session, user_id: str, trainer_id: Optional[str]) -> None:
    if not trainer_id:
        raise ValidationError("trainerId is required")
    result = db.execute(
        delete(user_trainers)
        .where(user_trainers.c.user_id == user_id)
        .where(user_trainers.c.trainer_id == trainer_id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("Trainer not linked")
    db.commit()


def select_trainer(
    db: Session, user_id: str, trainer_id: Optional[str], replace: bool = False, now: Optional[datetime] = None
) -> str:
    """
    Legacy single-trainer pick stored on the user row.

    Picking the current trainer again is a no-op. Switching to another
    trainer requires ``replace``.

    Raises:
        ValidationError: Missing trainer id
        NotFoundError: Unknown trainer
        PermissionError: No active plan, or the plan grants no trainers
        ConflictError: A different trainer is already selected and replace is false
    """
    if not trainer_id:
        raise ValidationError("Trainer ID is required")
    get_trainer(db, trainer_id)

    user_row = _load_user_row(db, user_id)
    # The legacy pick counts as zero towards the link limit; only plan state matters here
    ensure_can_select_trainer(entitlement_from_row(db, user_row, normalize_now(now)), 0)

    if user_row.trainer_id == trainer_id:
        return "Trainer already selected"
    if user_row.trainer_id and not replace:
        raise ConflictError("You have already selected a trainer. To change, pass replace=true.")

    db.execute(
        update(users).where(users.c.id == user_id).values(trainer_id=trainer_id, updated_at=normalize_now(now))
    )
    db.commit()
    log_event("info", "trainer.selected", user_id=user_id, event_type="trainer.selected", extra={"trainer_id": trainer_id})
    return "Trainer selected successfully"
