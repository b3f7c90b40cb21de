import uuid
from datetime import date, time

from sqlmodel import Field

from app.models.content import ContentBase


class Event(ContentBase, table=True):
    """
    A church event (service, meeting, retreat...).

    Owner column: created_by.
    """

    __tablename__ = "events"

    title: str = Field(max_length=200, min_length=3, index=True)

    description: str | None = None

    event_date: date = Field(index=True)
    start_time: time | None = None
    end_time: time | None = None

    location: str | None = Field(default=None, max_length=255)

    capacity: int | None = Field(default=None, ge=0)

    requires_rsvp: bool = Field(default=False)

    created_by: uuid.UUID | None = Field(
        default=None,
        index=True,
        description="Identity that created the event",
    )
