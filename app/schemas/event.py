import uuid
from datetime import date, datetime, time

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from app.schemas.content import SlugPayload, strip_optional, strip_required


class EventCreate(SlugPayload):
    """
    Payload for creating an event.

    - slug is optional: if omitted, generated from `title`.
    - end_time, when given, must not precede start_time.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=200, min_length=3)
    description: str | None = None
    event_date: date
    start_time: time | None = None
    end_time: time | None = None
    location: str | None = Field(default=None, max_length=255)
    capacity: int | None = Field(default=None, ge=0)
    requires_rsvp: bool = False
    is_published: bool = False
    created_by: uuid.UUID | None = None

    @field_validator("title")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return strip_required(v)

    @model_validator(mode="after")
    def check_times(self):
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time cannot be before start_time")
        return self


class EventUpdate(SlugPayload):
    """
    Partial update payload for events.
    All fields are optional.
    """

    model_config = ConfigDict(extra="forbid")
    not_null_fields = ("title", "event_date", "requires_rsvp", "is_published")

    title: str | None = Field(default=None, max_length=200, min_length=3)
    description: str | None = None
    event_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    location: str | None = Field(default=None, max_length=255)
    capacity: int | None = Field(default=None, ge=0)
    requires_rsvp: bool | None = None
    is_published: bool | None = None
    created_by: uuid.UUID | None = None

    @field_validator("title")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return strip_optional(v)


class EventRead(SQLModel):
    """
    Event representation for clients.
    """

    id: uuid.UUID
    slug: str
    title: str
    description: str | None
    event_date: date
    start_time: time | None
    end_time: time | None
    location: str | None
    capacity: int | None
    requires_rsvp: bool
    is_published: bool
    created_by: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
