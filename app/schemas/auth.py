import uuid
from datetime import datetime
from typing import Any

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from app.core.roles import Role


class LoginRequest(SQLModel):
    """
    Exchange an identity provider access token for an application session.
    """

    model_config = ConfigDict(extra="forbid")

    access_token: str = Field(min_length=1)


class SessionRead(SQLModel):
    """
    Issued session. `access_token` is only ever returned here.
    """

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    identity: uuid.UUID
    role: Role


class WhoAmI(SQLModel):
    """Resolved caller for the presented bearer token."""

    identity: uuid.UUID | None
    role: Role
    authenticated: bool


class IdentityCreatedEvent(SQLModel):
    """
    Supabase database webhook payload for INSERT on auth.users.

    Only `record` is used; other keys (schema, old_record...) are ignored.
    """

    type: str = "INSERT"
    table: str = "users"
    record: dict[str, Any]


class HookAck(SQLModel):
    synced: bool
    identity: uuid.UUID | None = None


class ReconcileRead(SQLModel):
    checked: int
    created: list[uuid.UUID]
    failed: list[uuid.UUID]
    unresolved_sessions: list[uuid.UUID]
