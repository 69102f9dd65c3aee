from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel


class Trainer(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    qualification: str
    image_url: Optional[str] = None
    champion_details: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TrainerCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=2)
    qualification: str = Field(min_length=2)
    image_url: Optional[HttpUrl] = None
    champion_details: Optional[str] = Field(default=None, max_length=500)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)

    @field_validator("name", "qualification", "champion_details", "email", mode="before")
    @classmethod
    def _trim(cls, value):
        return value.strip() if isinstance(value, str) else value


class TrainerUpdate(BaseModel):
    """Partial update; only fields present in ``model_fields_set`` are applied."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=2)
    qualification: Optional[str] = Field(default=None, min_length=2)
    image_url: Optional[HttpUrl] = None
    champion_details: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", "qualification", "champion_details", mode="before")
    @classmethod
    def _trim(cls, value):
        return value.strip() if isinstance(value, str) else value
