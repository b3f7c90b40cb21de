import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.models.profile import utcnow


class AuthSession(SQLModel, table=True):
    """
    Server-side record authorizing a bearer token to act as an identity.

    Only a SHA-256 digest of the token is stored. A session is valid iff
    revoked_at is NULL and the current time is before expires_at.

    identity deliberately has no foreign key to profiles: a session can
    exist for an identity whose profile has not been synchronized yet.
    """

    __tablename__ = "sessions"

    token_hash: str = Field(
        primary_key=True,
        max_length=64,
        description="Hex SHA-256 of the bearer token",
    )

    identity: uuid.UUID = Field(
        index=True,
        description="Supabase auth.users.id the token acts as",
    )

    issued_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
    )

    expires_at: datetime = Field(
        sa_type=DateTime(timezone=True),
        index=True,
    )

    revoked_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        description="Set on logout or when found expired",
    )
