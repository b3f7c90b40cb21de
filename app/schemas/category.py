import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.content import SlugPayload, strip_optional, strip_required


class CategoryCreate(SlugPayload):
    """Payload for creating a category (admin only)."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100, min_length=2)
    description: str | None = None
    is_published: bool = True

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return strip_required(v)


class CategoryUpdate(SlugPayload):
    model_config = ConfigDict(extra="forbid")
    not_null_fields = ("name", "is_published")

    name: str | None = Field(default=None, max_length=100, min_length=2)
    description: str | None = None
    is_published: bool | None = None

    @field_validator("name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return strip_optional(v)


class CategoryRead(SQLModel):
    id: uuid.UUID
    slug: str
    name: str
    description: str | None
    is_published: bool
    created_at: datetime
    updated_at: datetime
