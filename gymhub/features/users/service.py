"""
gymhub/features/users/service.py

Member, owner and admin accounts.

Handles:
- Registration and password login (email matched case-insensitively)
- Dashboard view (profile, membership, trainers, free-product entitlement)
- Admin management of owner accounts and their own profile
- Owner headline stats
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import exists, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.database import new_id, trainers, user_trainers, users
from gymhub.core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from gymhub.core.logging import log_event
from gymhub.core.money import to_money
from gymhub.core.security import hash_password, verify_password
from gymhub.features.entitlements.service import entitlement_from_row
from gymhub.features.trainers.service import row_to_trainer
from gymhub.models.entitlement import UserEntitlement
from gymhub.models.trainer import Trainer
from gymhub.models.user import OwnerStats, RegisterInput, Role, User


class Dashboard(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    user: User
    trainer: Optional[Trainer] = None
    trainers: List[Trainer]
    entitlement: UserEntitlement


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        role=Role(row.role),
        height_cm=row.height_cm,
        weight_kg=to_money(row.weight_kg) if row.weight_kg is not None else None,
        place=row.place,
        bio=row.bio,
        membership_plan=row.membership_plan,
        plan_starts_at=as_utc(row.plan_starts_at),
        plan_ends_at=as_utc(row.plan_ends_at),
        trainers_limit=row.trainers_limit,
        free_products_per_month=row.free_products_per_month,
        trainer_id=row.trainer_id,
        created_at=as_utc(row.created_at),
    )


def _email_taken(db: Session, email: str, exclude_user_id: Optional[str] = None) -> bool:
    query = select(users.c.id).where(func.lower(users.c.email) == email)
    if exclude_user_id:
        query = query.where(users.c.id != exclude_user_id)
    return db.execute(query).first() is not None


def _insert_user(db: Session, values: dict) -> User:
    try:
        db.execute(insert(users).values(**values))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already registered")
    return get_user(db, values["id"])


def get_user(db: Session, user_id: str) -> User:
    row = db.execute(select(users).where(users.c.id == user_id)).first()
    if not row:
        raise NotFoundError("User not found")
    return row_to_user(row)


def register_user(db: Session, data: RegisterInput, now: Optional[datetime] = None) -> User:
    """
    Create a member account.

    Raises:
        ConflictError: Email already registered
    """
    email = normalize_email(data.email)
    if _email_taken(db, email):
        raise ConflictError("Email already registered")

    at = normalize_now(now)
    user = _insert_user(
        db,
        {
            "id": new_id(),
            "name": data.name,
            "email": email,
            "password_hash": hash_password(data.password),
            "role": Role.USER.value,
            "height_cm": data.height_cm,
            "weight_kg": data.weight_kg,
            "place": data.place,
            "bio": data.bio,
            "created_at": at,
            "updated_at": at,
        },
    )
    log_event("info", "user.registered", user_id=user.id, event_type="user.registered")
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Check credentials and return the user.

    Raises:
        UnauthorizedError: Unknown email or wrong password
    """
    row = db.execute(select(users).where(func.lower(users.c.email) == normalize_email(email))).first()
    if not row or not verify_password(password, row.password_hash):
        raise UnauthorizedError("Invalid email or password")
    return row_to_user(row)


def get_dashboard(db: Session, user_id: str, now: Optional[datetime] = None) -> Dashboard:
    row = db.execute(select(users).where(users.c.id == user_id)).first()
    if not row:
        raise NotFoundError("User not found")

    legacy_trainer = None
    if row.trainer_id:
        trainer_row = db.execute(select(trainers).where(trainers.c.id == row.trainer_id)).first()
        legacy_trainer = row_to_trainer(trainer_row) if trainer_row else None

    linked = db.execute(
        select(trainers)
        .select_from(user_trainers.join(trainers, user_trainers.c.trainer_id == trainers.c.id))
        .where(user_trainers.c.user_id == user_id)
        .order_by(user_trainers.c.created_at.desc())
    ).fetchall()

    return Dashboard(
        user=row_to_user(row),
        trainer=legacy_trainer,
        trainers=[row_to_trainer(t) for t in linked],
        entitlement=entitlement_from_row(db, row, normalize_now(now)),
    )


def list_owners(db: Session) -> List[User]:
    rows = db.execute(
        select(users).where(users.c.role == Role.OWNER.value).order_by(users.c.created_at.desc())
    ).fetchall()
    return [row_to_user(row) for row in rows]


def create_owner(
    db: Session, name: Optional[str], email: Optional[str], password: Optional[str], now: Optional[datetime] = None
) -> User:
    """
    Create an OWNER account (admin only).

    Raises:
        ValidationError: Missing name, email or password
        ConflictError: Email already registered
    """
    if not name or not email or not password:
        raise ValidationError("name, email and password are required")
    normalized = normalize_email(email)
    if _email_taken(db, normalized):
        raise ConflictError("Email already registered")

    at = normalize_now(now)
    owner = _insert_user(
        db,
        {
            "id": new_id(),
            "name": name.strip(),
            "email": normalized,
            "password_hash": hash_password(password),
            "role": Role.OWNER.value,
            "created_at": at,
            "updated_at": at,
        },
    )
    log_event("info", "owner.created", user_id=owner.id, event_type="owner.created")
    return owner


def update_profile(
    db: Session, user_id: str, name: Optional[str] = None, email: Optional[str] = None, now: Optional[datetime] = None
) -> User:
    """Change name and/or email; blank values are ignored."""
    changes = {}
    if name and name.strip():
        changes["name"] = name.strip()
    if email and email.strip():
        normalized = normalize_email(email)
        if _email_taken(db, normalized, exclude_user_id=user_id):
            raise ConflictError("Email already registered")
        changes["email"] = normalized

    get_user(db, user_id)
    if changes:
        changes["updated_at"] = normalize_now(now)
        db.execute(update(users).where(users.c.id == user_id).values(**changes))
        db.commit()
    return get_user(db, user_id)


def get_owner_stats(db: Session) -> OwnerStats:
    """Members, trainers, and members with a trainer (legacy pick or at least one link)."""
    members = users.c.role == Role.USER.value
    has_link = exists().where(user_trainers.c.user_id == users.c.id)

    total_users = db.execute(select(func.count()).select_from(users).where(members)).scalar()
    total_trainers = db.execute(select(func.count()).select_from(trainers)).scalar()
    assigned_users = db.execute(
        select(func.count())
        .select_from(users)
        .where(members)
        .where(or_(users.c.trainer_id.isnot(None), has_link))
    ).scalar()

    return OwnerStats(
        total_users=total_users or 0,
        total_trainers=total_trainers or 0,
        assigned_users=assigned_users or 0,
    )
