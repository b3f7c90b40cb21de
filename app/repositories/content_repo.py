import uuid
from typing import Generic, TypeVar

from sqlalchemy import or_
from sqlmodel import Session, select

from app.models.content import ContentBase

ContentT = TypeVar("ContentT", bound=ContentBase)


class ContentRepository(Generic[ContentT]):
    """
    Data access layer shared by all content tables.

    - Pure DB operations (CRUD + queries).
    - Visibility filtering is expressed as query parameters; deciding who
      may see what belongs to the policy layer.
    """

    def __init__(self, model: type[ContentT], owner_field: str | None = None):
        self.model = model
        self.owner_field = owner_field

    def get_by_id(self, session: Session, row_id: uuid.UUID) -> ContentT | None:
        return session.get(self.model, row_id)

    def get_by_slug(self, session: Session, slug: str) -> ContentT | None:
        stmt = select(self.model).where(self.model.slug == slug)
        return session.exec(stmt).first()

    def list_rows(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        include_unpublished: bool = False,
        owner: uuid.UUID | None = None,
    ) -> list[ContentT]:
        """
        List rows, newest first.

        Args:
            include_unpublished: return every row (admin listing).
            owner: also return this identity's unpublished rows.
        """
        stmt = select(self.model)
        if not include_unpublished:
            published = self.model.is_published == True  # noqa: E712
            if owner is not None and self.owner_field is not None:
                owner_col = getattr(self.model, self.owner_field)
                stmt = stmt.where(or_(published, owner_col == owner))
            else:
                stmt = stmt.where(published)
        stmt = stmt.order_by(self.model.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def create(self, session: Session, row: ContentT) -> ContentT:
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    def update(self, session: Session, row: ContentT) -> ContentT:
        session.add(row)
        session.commit()
        session.refresh(row)
        return row

    def delete(self, session: Session, row: ContentT) -> None:
        session.delete(row)
        session.commit()
