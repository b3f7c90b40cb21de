"""
Row authorization policies for content tables.

One decision table is shared by every content table:

    Operation            Anonymous  Member                   Admin
    select (published)   allow      allow                    allow
    select (unpublished) deny       allow if owner           allow
    insert               deny       allow (owner == caller)  allow
    update               deny       allow if owner           allow
    delete               deny       deny                     allow

A table without an owner column collapses "allow if owner" to deny.
Admin is checked first and allows everything.

Policies are plain data so they can be reviewed, versioned and tested;
`evaluate` is a pure function of its arguments.
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.core.errors import AccessErrorKind
from app.core.roles import Principal

# Bump when the decision table or any table policy changes.
POLICY_VERSION = "2024.06.1"


class Operation(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class TablePolicy:
    """Per-table specialization of the decision table."""

    table: str
    owner_field: str | None = None
    published_field: str = "is_published"

    @property
    def has_owner(self) -> bool:
        return self.owner_field is not None


@dataclass(frozen=True)
class Decision:
    """Outcome of a policy check; `rule` names the row of the table that applied."""

    allowed: bool
    rule: str
    kind: AccessErrorKind | None = None

    @classmethod
    def allow(cls, rule: str) -> "Decision":
        return cls(allowed=True, rule=rule)

    @classmethod
    def deny(cls, rule: str, kind: AccessErrorKind) -> "Decision":
        return cls(allowed=False, rule=rule, kind=kind)


POLICY_SET: dict[str, TablePolicy] = {
    "sermons": TablePolicy(table="sermons", owner_field="created_by"),
    "events": TablePolicy(table="events", owner_field="created_by"),
    "blog_posts": TablePolicy(table="blog_posts", owner_field="author_id"),
    "categories": TablePolicy(table="categories", owner_field=None),
}


def get_policy(table: str) -> TablePolicy:
    """Return the policy for a table; unknown tables have no policy and are a programming error."""
    try:
        return POLICY_SET[table]
    except KeyError:
        raise LookupError(f"No row policy declared for table {table!r}") from None


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _as_uuid(value: Any) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _is_owner(policy: TablePolicy, principal: Principal, row: Any) -> bool:
    if not policy.has_owner or principal.identity is None:
        return False
    return _as_uuid(_field(row, policy.owner_field)) == principal.identity


def evaluate(
    policy: TablePolicy,
    operation: Operation,
    principal: Principal,
    row: Any = None,
    payload: Mapping[str, Any] | None = None,
) -> Decision:
    """
    Decide whether `principal` may perform `operation` on `row`.

    Args:
        policy: the table's policy.
        operation: select / insert / update / delete.
        principal: resolved caller.
        row: the existing row (select, update, delete). For select, None
            means a listing query restricted to published rows.
        payload: the values being written (insert, update).

    Returns:
        Decision. Denied reads are NOT_FOUND so private rows stay hidden;
        denied writes are UNAUTHENTICATED for anonymous callers and
        FORBIDDEN otherwise.
    """
    if principal.is_admin:
        return Decision.allow("admin")

    if operation is Operation.SELECT:
        if row is None or bool(_field(row, policy.published_field)):
            return Decision.allow("select-published")
        if _is_owner(policy, principal, row):
            return Decision.allow("select-own-unpublished")
        return Decision.deny("select-unpublished-not-owner", AccessErrorKind.NOT_FOUND)

    if principal.is_anonymous:
        return Decision.deny(f"{operation.value}-anonymous", AccessErrorKind.UNAUTHENTICATED)

    if operation is Operation.DELETE:
        return Decision.deny("delete-admin-only", AccessErrorKind.FORBIDDEN)

    if not policy.has_owner:
        return Decision.deny(f"{operation.value}-no-owner-admin-only", AccessErrorKind.FORBIDDEN)

    payload = payload or {}

    if operation is Operation.INSERT:
        if policy.owner_field in payload and _as_uuid(payload[policy.owner_field]) != principal.identity:
            return Decision.deny("insert-owner-mismatch", AccessErrorKind.FORBIDDEN)
        return Decision.allow("insert-own")

    # UPDATE
    if not _is_owner(policy, principal, row):
        return Decision.deny("update-not-owner", AccessErrorKind.FORBIDDEN)
    if policy.owner_field in payload and _as_uuid(payload[policy.owner_field]) != principal.identity:
        return Decision.deny("update-owner-reassign", AccessErrorKind.FORBIDDEN)
    return Decision.allow("update-own")
