import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.models.profile import utcnow


class ContentBase(SQLModel):
    """
    Columns every content table carries.

    Visibility:
      - is_published=True  => visible to everyone
      - is_published=False => visible to the owner and admins only

    The owner column differs per table (created_by / author_id) and is
    declared on the table itself; categories have none.
    """

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique per table)",
    )

    is_published: bool = Field(
        default=False,
        index=True,
        description="Whether this row is visible to the public",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        description="Last modification timestamp (UTC)",
    )
