import uuid
from datetime import datetime
from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.core.roles import Role, STORABLE_ROLES


def _normalize_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("display_name cannot be empty")
    return v


class ProfileRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    email: str | None
    display_name: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProfileUpdate(SQLModel):
    """
    Partial profile update by the owning identity.
    Role and status are not editable here.
    """

    model_config = ConfigDict(extra="forbid")

    display_name: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None

    @field_validator("display_name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return _normalize_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v


class ProfileRoleUpdate(SQLModel):
    """
    Admin-only role update schema.
    "anonymous" is derived, never assigned.
    """

    model_config = ConfigDict(extra="forbid")
    role: Role

    @field_validator("role")
    @classmethod
    def storable_role(cls, v: Role) -> Role:
        if v not in STORABLE_ROLES:
            raise ValueError("role must be member or admin")
        return v


class ProfileStatusUpdate(SQLModel):
    """
    Admin-only activation toggle.
    """

    model_config = ConfigDict(extra="forbid")
    is_active: bool
