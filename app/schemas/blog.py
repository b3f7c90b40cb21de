import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.content import SlugPayload, strip_optional, strip_required


class BlogPostCreate(SlugPayload):
    """
    Payload for creating a blog post.

    - author_id is optional: defaults to the caller.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(max_length=200, min_length=3)
    excerpt: str | None = Field(default=None, max_length=500)
    content: str
    featured_image_url: str | None = None
    category_id: uuid.UUID | None = None
    published_at: datetime | None = None
    is_featured: bool = False
    is_published: bool = False
    author_id: uuid.UUID | None = None

    @field_validator("title", "content")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return strip_required(v)


class BlogPostUpdate(SlugPayload):
    """
    Partial update payload for blog posts.
    """

    model_config = ConfigDict(extra="forbid")
    not_null_fields = ("title", "content", "is_featured", "is_published")

    title: str | None = Field(default=None, max_length=200, min_length=3)
    excerpt: str | None = Field(default=None, max_length=500)
    content: str | None = None
    featured_image_url: str | None = None
    category_id: uuid.UUID | None = None
    published_at: datetime | None = None
    is_featured: bool | None = None
    is_published: bool | None = None
    author_id: uuid.UUID | None = None

    @field_validator("title", "content")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        return strip_optional(v)


class BlogPostRead(SQLModel):
    """
    Blog post representation for clients.
    """

    id: uuid.UUID
    slug: str
    title: str
    excerpt: str | None
    content: str
    featured_image_url: str | None
    category_id: uuid.UUID | None
    published_at: datetime | None
    is_featured: bool
    is_published: bool
    author_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
