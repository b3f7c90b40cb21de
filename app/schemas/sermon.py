import uuid
from datetime import date, datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.content import SlugPayload, strip_optional, strip_required


class SermonCreate(SlugPayload):
    """
    Payload for creating a sermon.

    - slug is optional: if omitted, generated from `title`.
    - created_by is optional: defaults to the caller; any other identity
      is rejected unless the caller is an admin.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=200, min_length=3)
    description: str | None = None
    speaker_name: str = Field(max_length=100)
    preached_date: date | None = None
    video_url: str | None = None
    audio_url: str | None = None
    thumbnail_url: str | None = None
    tags: list[str] | None = None
    category_id: uuid.UUID | None = None
    featured: bool = False
    is_published: bool = False
    created_by: uuid.UUID | None = None

    @field_validator("title", "speaker_name")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return strip_required(v)


class SermonUpdate(SlugPayload):
    """
    Partial update payload for sermons.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")
    not_null_fields = ("title", "speaker_name", "featured", "is_published")

    title: str | None = Field(default=None, max_length=200, min_length=3)
    description: str | None = None
    speaker_name: str | None = Field(default=None, max_length=100)
    preached_date: date | None = None
    video_url: str | None = None
    audio_url: str | None = None
    thumbnail_url: str | None = None
    tags: list[str] | None = None
    category_id: uuid.UUID | None = None
    featured: bool | None = None
    is_published: bool | None = None
    created_by: uuid.UUID | None = None

    @field_validator("title", "speaker_name")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return strip_optional(v)


class SermonRead(SQLModel):
    """
    Sermon representation for clients.
    """

    id: uuid.UUID
    slug: str
    title: str
    description: str | None
    speaker_name: str
    preached_date: date | None
    video_url: str | None
    audio_url: str | None
    thumbnail_url: str | None
    tags: list[str] | None
    category_id: uuid.UUID | None
    featured: bool
    is_published: bool
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
