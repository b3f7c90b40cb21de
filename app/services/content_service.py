import logging
import re
import uuid
from typing import Any, Generic

from sqlalchemy.exc import DataError, IntegrityError
from sqlmodel import Session, SQLModel

from app.core.errors import AccessError, AccessErrorKind, classify_store_error
from app.core.policies import Decision, Operation, TablePolicy, evaluate
from app.core.roles import Principal
from app.models.profile import utcnow
from app.repositories.content_repo import ContentRepository, ContentT

logger = logging.getLogger(__name__)


class ContentService(Generic[ContentT]):
    """
    Business logic shared by sermons, events, blog posts and categories.

    Responsibilities:
      - slug generation & uniqueness
      - run every read and write through the table's row policy
      - reject (never rewrite) attempts to set someone else as owner

    Error kinds:
      - reads of rows the caller may not see    => NOT_FOUND
      - writes by anonymous callers             => UNAUTHENTICATED
      - writes the caller's role/ownership deny => FORBIDDEN
      - writes the store rejects                => CONFLICT / INVALID
    """

    def __init__(
        self,
        repo: ContentRepository[ContentT],
        policy: TablePolicy,
        slug_source: str = "title",
    ):
        self.repo = repo
        self.policy = policy
        self.slug_source = slug_source

    # ----- Helpers -----

    @staticmethod
    def _slugify(raw: str) -> str:
        """
        Basic slugification:
          - lowercase
          - non-alphanumeric -> '-'
          - collapse multiple '-'
          - strip leading/trailing '-'
        """
        value = raw.strip().lower()
        value = re.sub(r"[^a-z0-9]+", "-", value)
        value = re.sub(r"-+", "-", value)
        value = value.strip("-")
        return value or "item"

    def _ensure_unique_slug(self, session: Session, base_slug: str) -> str:
        """
        Ensure slug is unique by appending -2, -3, ... if needed.
        """
        slug = base_slug
        i = 2
        while self.repo.get_by_slug(session, slug) is not None:
            slug = f"{base_slug}-{i}"
            i += 1
        return slug

    def _enforce(self, decision: Decision, operation: Operation, principal: Principal, row_id: Any = None) -> None:
        if decision.allowed:
            return
        raise AccessError(
            decision.kind or AccessErrorKind.FORBIDDEN,
            f"{self.policy.table}.{operation.value} row={row_id} "
            f"role={principal.role.value} identity={principal.identity} rule={decision.rule}",
        )

    def _write(self, session: Session, write, row: ContentT) -> ContentT:
        try:
            return write(session, row)
        except (IntegrityError, DataError) as exc:
            session.rollback()
            raise classify_store_error(exc) from exc

    def _require_row(self, session: Session, row_id: uuid.UUID) -> ContentT:
        row = self.repo.get_by_id(session, row_id)
        if row is None:
            raise AccessError(AccessErrorKind.NOT_FOUND, f"{self.policy.table} row={row_id} does not exist")
        return row

    # ----- Reads -----

    def list_rows(
        self,
        session: Session,
        principal: Principal,
        skip: int = 0,
        limit: int = 50,
    ) -> list[ContentT]:
        """
        Published rows for everyone, plus the caller's own unpublished rows;
        admins see every row.
        """
        return self.repo.list_rows(
            session,
            skip=skip,
            limit=limit,
            include_unpublished=principal.is_admin,
            owner=None if principal.is_anonymous else principal.identity,
        )

    def get_row(self, session: Session, principal: Principal, row_id: uuid.UUID) -> ContentT:
        """
        Raises:
            AccessError(NOT_FOUND): if the row does not exist or the caller
                may not see it; the two are indistinguishable on purpose.
        """
        row = self._require_row(session, row_id)
        self._enforce(evaluate(self.policy, Operation.SELECT, principal, row=row), Operation.SELECT, principal, row_id)
        return row

    # ----- Writes -----

    def create_row(self, session: Session, principal: Principal, payload: SQLModel) -> ContentT:
        """
        Insert a new row owned by the caller.

        - Owner omitted => defaults to the caller.
        - Owner set to another identity => FORBIDDEN (admins excepted).
        - Slug omitted => derived from the title/name, made unique.
        """
        # Schema defaults apply on insert.
        data = payload.model_dump()

        if self.policy.has_owner and data.get(self.policy.owner_field) is None and not principal.is_anonymous:
            data[self.policy.owner_field] = principal.identity

        self._enforce(evaluate(self.policy, Operation.INSERT, principal, payload=data), Operation.INSERT, principal)

        raw_slug = data.pop("slug", None) or str(data.get(self.slug_source) or "")
        data["slug"] = self._ensure_unique_slug(session, self._slugify(raw_slug))

        row = self._write(session, self.repo.create, self.repo.model(**data))
        logger.info("%s %s created by %s", self.policy.table, row.id, principal.identity)
        return row

    def update_row(
        self,
        session: Session,
        principal: Principal,
        row_id: uuid.UUID,
        payload: SQLModel,
    ) -> ContentT:
        """
        Partial update.

        Raises:
            AccessError(UNAUTHENTICATED): anonymous caller.
            AccessError(NOT_FOUND): row does not exist.
            AccessError(FORBIDDEN): caller is not the owner, or tries to
                hand the row to another identity.
        """
        self._reject_anonymous_write(principal, Operation.UPDATE, row_id)
        row = self._require_row(session, row_id)
        data = payload.model_dump(exclude_unset=True)

        self._enforce(
            evaluate(self.policy, Operation.UPDATE, principal, row=row, payload=data),
            Operation.UPDATE,
            principal,
            row_id,
        )

        raw_slug = data.pop("slug", None)
        if raw_slug:
            new_slug = self._slugify(raw_slug)
            if new_slug != row.slug:
                row.slug = self._ensure_unique_slug(session, new_slug)

        for key, value in data.items():
            setattr(row, key, value)
        row.updated_at = utcnow()

        return self._write(session, self.repo.update, row)

    def delete_row(self, session: Session, principal: Principal, row_id: uuid.UUID) -> None:
        """Delete a row (admins only under the shared decision table)."""
        self._reject_anonymous_write(principal, Operation.DELETE, row_id)
        row = self._require_row(session, row_id)
        self._enforce(evaluate(self.policy, Operation.DELETE, principal, row=row), Operation.DELETE, principal, row_id)
        self.repo.delete(session, row)
        logger.info("%s %s deleted by %s", self.policy.table, row_id, principal.identity)

    def _reject_anonymous_write(self, principal: Principal, operation: Operation, row_id: uuid.UUID) -> None:
        # Checked before the row lookup so anonymous callers cannot probe ids.
        if principal.is_anonymous:
            self._enforce(evaluate(self.policy, operation, principal), operation, principal, row_id)
