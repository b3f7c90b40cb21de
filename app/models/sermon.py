import uuid
from datetime import date

from sqlalchemy import JSON
from sqlmodel import Field

from app.models.content import ContentBase


class Sermon(ContentBase, table=True):
    """
    A recorded sermon (video and/or audio).

    Owner column: created_by.
    """

    __tablename__ = "sermons"

    title: str = Field(max_length=200, min_length=3, index=True)

    description: str | None = None

    speaker_name: str = Field(max_length=100)

    preached_date: date | None = Field(default=None, index=True)

    video_url: str | None = None
    audio_url: str | None = None
    thumbnail_url: str | None = None

    tags: list[str] | None = Field(default=None, sa_type=JSON)

    category_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    featured: bool = Field(default=False)

    created_by: uuid.UUID | None = Field(
        default=None,
        index=True,
        description="Identity that created the sermon",
    )
