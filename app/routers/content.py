import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, SQLModel

from app.core.auth import get_principal
from app.core.roles import Principal
from app.database import get_session
from app.services.content_service import ContentService


def build_content_router(
    *,
    prefix: str,
    tag: str,
    service: ContentService,
    create_schema: type[SQLModel],
    update_schema: type[SQLModel],
    read_schema: type[SQLModel],
) -> APIRouter:
    """
    CRUD router for one content table.

    Every endpoint resolves the caller (anonymous allowed) and lets the
    service apply the table's row policy; no endpoint is role-gated here.
    """
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=list[read_schema])
    def list_rows(
        session: Session = Depends(get_session),
        principal: Principal = Depends(get_principal),
        skip: int = 0,
        limit: int = 50,
    ):
        """
        List rows visible to the caller.

        - Anonymous: published only.
        - Member: published + own unpublished.
        - Admin: everything.
        """
        return service.list_rows(session, principal, skip=skip, limit=limit)

    @router.get("/{row_id}", response_model=read_schema)
    def get_row(
        row_id: uuid.UUID,
        session: Session = Depends(get_session),
        principal: Principal = Depends(get_principal),
    ):
        """Get one row; hidden rows answer 404 like missing ones."""
        return service.get_row(session, principal, row_id)

    @router.post("", response_model=read_schema, status_code=status.HTTP_201_CREATED)
    def create_row(
        payload: create_schema,
        session: Session = Depends(get_session),
        principal: Principal = Depends(get_principal),
    ):
        """Create a row owned by the caller."""
        return service.create_row(session, principal, payload)

    @router.patch("/{row_id}", response_model=read_schema)
    def update_row(
        row_id: uuid.UUID,
        payload: update_schema,
        session: Session = Depends(get_session),
        principal: Principal = Depends(get_principal),
    ):
        """Partial update; owner or admin only."""
        return service.update_row(session, principal, row_id, payload)

    @router.delete("/{row_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_row(
        row_id: uuid.UUID,
        session: Session = Depends(get_session),
        principal: Principal = Depends(get_principal),
    ):
        """Delete a row (admin only)."""
        service.delete_row(session, principal, row_id)
        return None

    return router
