import uuid
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """
    Application roles, lowest privilege first.

    Only MEMBER and ADMIN are ever stored on a profile.
    ANONYMOUS is derived: no session, inactive profile or missing profile.
    """

    ANONYMOUS = "anonymous"
    MEMBER = "member"
    ADMIN = "admin"


# Roles an administrator may assign to a profile.
STORABLE_ROLES = frozenset({Role.MEMBER, Role.ADMIN})

# Role given to a profile created by synchronization.
DEFAULT_ROLE = Role.MEMBER


@dataclass(frozen=True)
class Principal:
    """Resolved caller: who they are and what they may do."""

    identity: uuid.UUID | None
    role: Role

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(identity=None, role=Role.ANONYMOUS)

    @property
    def is_anonymous(self) -> bool:
        return self.identity is None or self.role is Role.ANONYMOUS

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
