import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field

from app.models.content import ContentBase


class BlogPost(ContentBase, table=True):
    """
    A blog article.

    Owner column: author_id.
    """

    __tablename__ = "blog_posts"

    title: str = Field(max_length=200, min_length=3, index=True)

    excerpt: str | None = Field(default=None, max_length=500)

    content: str

    featured_image_url: str | None = None

    category_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    published_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )

    is_featured: bool = Field(default=False)

    author_id: uuid.UUID | None = Field(
        default=None,
        index=True,
        description="Identity that wrote the post",
    )
