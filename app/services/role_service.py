import logging
import uuid

from sqlmodel import Session

from app.core.roles import Role, STORABLE_ROLES
from app.repositories.profile_repo import ProfileRepository

logger = logging.getLogger(__name__)


class RoleResolver:
    """
    Maps an identity to its authorization role.

    Read-only: never creates or mutates a profile.
    """

    def __init__(self, repo: ProfileRepository):
        self.repo = repo

    def resolve(self, session: Session, identity: uuid.UUID | None) -> Role:
        """
        Resolve the role for `identity`.

        Returns ANONYMOUS when:
          - identity is None (no valid session)
          - no profile exists yet (profile sync has not run)
          - the profile is inactive
          - the stored role is not one we recognize
        """
        if identity is None:
            return Role.ANONYMOUS

        profile = self.repo.get_by_id(session, identity)
        if profile is None:
            logger.warning("Identity %s has a session but no profile; treating as anonymous", identity)
            return Role.ANONYMOUS

        if not profile.is_active:
            return Role.ANONYMOUS

        try:
            role = Role(profile.role)
        except ValueError:
            logger.warning("Profile %s has unknown role %r; treating as anonymous", identity, profile.role)
            return Role.ANONYMOUS

        if role not in STORABLE_ROLES:
            return Role.ANONYMOUS
        return role
