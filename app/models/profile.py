import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.core.roles import DEFAULT_ROLE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(SQLModel, table=True):
    """
    Authoritative role and status record for an identity.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - "member" | "admin"
      - "anonymous" is never stored; it is derived from a missing session,
        a missing profile or is_active=False.

    Profiles are never hard-deleted; admins deactivate them instead.
    Password hashes live with the identity provider, not here.
    """

    __tablename__ = "profiles"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str | None = Field(
        default=None,
        unique=True,
        index=True,
        description="Email from Supabase auth.users",
    )

    display_name: str = Field(
        max_length=100,
        description="Display name; first part of email by default",
    )

    # Application role (not Supabase RLS role)
    role: str = Field(
        default=DEFAULT_ROLE.value,
        index=True,
        nullable=False,
        description="Application role: member | admin",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Inactive profiles are treated as anonymous",
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
