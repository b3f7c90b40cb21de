import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.identity_provider import IdentitySource, ProviderIdentity
from app.core.roles import DEFAULT_ROLE
from app.models.profile import Profile
from app.repositories.profile_repo import ProfileRepository

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """Outcome of one reconciliation pass."""

    checked: int = 0
    created: list[uuid.UUID] = field(default_factory=list)
    failed: list[uuid.UUID] = field(default_factory=list)
    # Identities holding a live session but unknown to the provider listing
    # and still without a profile; they keep resolving to anonymous.
    unresolved_sessions: list[uuid.UUID] = field(default_factory=list)


class ProfileSyncService:
    """
    Keeps exactly one Profile per provider identity.

    Responsibilities:
      - create a default profile the first time an identity shows up
      - never overwrite an existing role or status
      - tolerate sync failures (a missing profile is an expected,
        recoverable state) and repair them in reconcile()
    """

    def __init__(self, repo: ProfileRepository):
        self.repo = repo

    def sync_identity(self, session: Session, identity: ProviderIdentity) -> Profile:
        """
        Idempotent upsert keyed by identity.

        - Profile exists for the identity: fill in a missing email only.
        - Profile exists for the email under another identity
          (pre-provisioned): move it onto this identity, keeping role
          and status.
        - Otherwise: insert role=member, is_active=True.

        Raises:
            SQLAlchemyError: on backend failure (see try_sync_identity).
        """
        existing = self.repo.get_by_id(session, identity.id)
        if existing is not None:
            if existing.email is None and identity.email:
                existing.email = identity.email
                existing = self.repo.update(session, existing)
            return existing

        if identity.email:
            by_email = self.repo.get_by_email(session, identity.email)
            if by_email is not None and by_email.id != identity.id:
                logger.info(
                    "Linking pre-provisioned profile %s (%s) to identity %s",
                    by_email.id,
                    identity.email,
                    identity.id,
                )
                self.repo.rekey(session, by_email.id, identity.id)
                return self.repo.get_by_id(session, identity.id)

        inserted = self.repo.insert_if_absent(
            session,
            identity=identity.id,
            email=identity.email,
            display_name=identity.display_name,
            role=DEFAULT_ROLE.value,
        )
        if inserted:
            logger.info("Created profile for identity %s", identity.id)

        profile = self.repo.get_by_id(session, identity.id)
        if profile is None:
            # The insert lost to a conflicting email under another identity
            # that appeared concurrently; retry the email branch once.
            by_email = self.repo.get_by_email(session, identity.email) if identity.email else None
            if by_email is None or by_email.id == identity.id:
                raise LookupError(f"Profile for identity {identity.id} missing after upsert")
            self.repo.rekey(session, by_email.id, identity.id)
            profile = self.repo.get_by_id(session, identity.id)
        return profile

    def try_sync_identity(self, session: Session, identity: ProviderIdentity) -> Profile | None:
        """
        sync_identity() for callers that must not fail because of it
        (login, identity-created hook).

        Returns:
            The profile, or None if synchronization failed; the failure is
            logged and left for reconcile() to repair.
        """
        try:
            return self.sync_identity(session, identity)
        except (SQLAlchemyError, LookupError) as exc:
            session.rollback()
            logger.warning("Profile sync failed for identity %s: %s", identity.id, exc)
            return None

    def find_missing(self, session: Session, identities: list[ProviderIdentity]) -> list[ProviderIdentity]:
        """Return the identities that have no profile yet."""
        existing = self.repo.existing_ids(session, [i.id for i in identities])
        return [i for i in identities if i.id not in existing]

    def reconcile(
        self,
        session: Session,
        source: IdentitySource,
        now: datetime | None = None,
    ) -> ReconcileReport:
        """
        Repair identities that have no profile.

        Safe to run on a schedule or on demand, and concurrently with
        logins: every insert goes through the same idempotent upsert.
        """
        report = ReconcileReport()
        identities = list(source.list_identities())
        report.checked = len(identities)

        for identity in self.find_missing(session, identities):
            profile = self.try_sync_identity(session, identity)
            if profile is None:
                report.failed.append(identity.id)
            else:
                report.created.append(identity.id)

        known = {i.id for i in identities}
        orphans = self.repo.session_identities_without_profile(
            session, now or datetime.now(timezone.utc)
        )
        report.unresolved_sessions = [i for i in orphans if i not in known]

        logger.info(
            "Reconciliation: checked=%d created=%d failed=%d unresolved_sessions=%d",
            report.checked,
            len(report.created),
            len(report.failed),
            len(report.unresolved_sessions),
        )
        return report
