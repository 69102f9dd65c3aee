from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Role(str, Enum):
    USER = "USER"
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    TRAINER = "TRAINER"


class User(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    email: str
    role: Role = Role.USER
    height_cm: Optional[int] = None
    weight_kg: Optional[Decimal] = None
    place: Optional[str] = None
    bio: Optional[str] = None
    membership_plan: Optional[str] = None
    plan_starts_at: Optional[datetime] = None
    plan_ends_at: Optional[datetime] = None
    trainers_limit: Optional[int] = None
    free_products_per_month: Optional[int] = None
    trainer_id: Optional[str] = None
    created_at: Optional[datetime] = None


class Principal(BaseModel):
    """Identity carried by a verified access token."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    role: Role
    jti: str
    expires_at: datetime


class RegisterInput(BaseModel):
    """Sign-up payload; email is normalized to trimmed lower case."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str = Field(min_length=8)
    height_cm: Optional[int] = Field(default=None, gt=0)
    weight_kg: Optional[Decimal] = Field(default=None, gt=0)
    place: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=300)

    @field_validator("name", "email", "place", "bio", mode="before")
    @classmethod
    def _trim(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.lower()

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterInput":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class OwnerStats(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    total_users: int
    total_trainers: int
    assigned_users: int
