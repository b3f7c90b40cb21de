from sqlmodel import Field

from app.models.content import ContentBase


class Category(ContentBase, table=True):
    """
    Shared category for sermons and blog posts.

    No owner column: only admins create or change categories.
    """

    __tablename__ = "categories"

    name: str = Field(
        max_length=100,
        min_length=2,
        index=True,
    )

    description: str | None = None
