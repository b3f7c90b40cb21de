"""
Identity provider (Supabase Auth) adapter.

The provider owns identities; this module only reads them:
  - from a verified access token's claims (login)
  - from an identity-created webhook record
  - by listing users through the admin API (reconciliation)
"""

import uuid
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from app.core.supabase_client import supabase_admin

# Page size for the Supabase admin user listing.
LIST_PAGE_SIZE = 200


def _default_name_from_email(email: str | None) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if not email:
        return "Member"
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def _name_from_metadata(metadata: Mapping[str, Any] | None, email: str | None) -> str:
    metadata = metadata or {}
    for key in ("full_name", "name", "display_name"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()[:100]
    return _default_name_from_email(email)[:100]


@dataclass(frozen=True)
class ProviderIdentity:
    """What the identity provider tells us about one identity."""

    id: uuid.UUID
    email: str | None = None
    display_name: str = "Member"

    @classmethod
    def build(
        cls,
        raw_id: Any,
        email: str | None,
        metadata: Mapping[str, Any] | None = None,
    ) -> "ProviderIdentity":
        """
        Raises:
            ValueError: if raw_id is not a UUID.
        """
        email = email.strip().lower() if email else None
        return cls(
            id=uuid.UUID(str(raw_id)),
            email=email or None,
            display_name=_name_from_metadata(metadata, email),
        )

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "ProviderIdentity":
        """Build from decoded Supabase JWT claims (sub, email, user_metadata)."""
        return cls.build(claims.get("sub"), claims.get("email"), claims.get("user_metadata"))

    @classmethod
    def from_hook_record(cls, record: Mapping[str, Any]) -> "ProviderIdentity":
        """Build from an auth.users row as sent by a Supabase database webhook."""
        return cls.build(record.get("id"), record.get("email"), record.get("raw_user_meta_data"))


class IdentitySource(Protocol):
    """Anything reconciliation can enumerate identities from."""

    def list_identities(self) -> Iterator[ProviderIdentity]: ...


class SupabaseIdentityProvider:
    """Enumerates identities through the Supabase Auth admin API (service role key)."""

    def __init__(self, client=None, page_size: int = LIST_PAGE_SIZE):
        self._client = client
        self.page_size = page_size

    @property
    def client(self):
        if self._client is None:
            self._client = supabase_admin()
        return self._client

    def list_identities(self) -> Iterator[ProviderIdentity]:
        page = 1
        while True:
            users = self.client.auth.admin.list_users(page=page, per_page=self.page_size)
            for user in users:
                yield ProviderIdentity.build(user.id, user.email, user.user_metadata)
            if len(users) < self.page_size:
                return
            page += 1
