import logging
import uuid

from sqlmodel import Session

from app.core.errors import conflict, forbidden, not_found
from app.core.roles import Principal
from app.models.profile import Profile
from app.repositories.profile_repo import ProfileRepository
from app.schemas.profile import ProfileUpdate, ProfileRoleUpdate, ProfileStatusUpdate

logger = logging.getLogger(__name__)


class ProfileService:
    """
    Business logic for the profile directory.

    Responsibilities:
      - owners edit display_name / email only
      - admins change role and is_active (never hard delete)
      - map domain errors to AccessError kinds
    """

    def __init__(self, repo: ProfileRepository):
        self.repo = repo

    # ----- Self profile -----

    def get_me(self, session: Session, principal: Principal) -> Profile:
        """Return the caller's profile (require_auth guarantees it exists and is active)."""
        return self.get_profile(session, principal.identity)

    def update_me(
        self,
        session: Session,
        principal: Principal,
        payload: ProfileUpdate,
    ) -> Profile:
        """
        Partial update of the caller's own profile.
        Only `display_name` and `email` are editable here.
        """
        profile = self.get_me(session, principal)

        if payload.display_name is not None:
            profile.display_name = payload.display_name

        if payload.email is not None and payload.email != profile.email:
            taken = self.repo.get_by_email(session, payload.email)
            if taken is not None and taken.id != profile.id:
                raise conflict(f"email {payload.email} already belongs to profile {taken.id}")
            profile.email = payload.email

        return self.repo.update(session, profile)

    # ----- Admin operations -----

    def list_profiles(
        self,
        session: Session,
        skip: int,
        limit: int,
        only_active: bool = False,
    ) -> list[Profile]:
        """List profiles with pagination (admin only)."""
        return self.repo.list_profiles(session, skip=skip, limit=limit, only_active=only_active)

    def get_profile(self, session: Session, identity: uuid.UUID) -> Profile:
        """
        Get a profile by identity.

        Raises:
            AccessError(NOT_FOUND): if no profile exists.
        """
        profile = self.repo.get_by_id(session, identity)
        if not profile:
            raise not_found(f"profile {identity} does not exist")
        return profile

    def update_role(
        self,
        session: Session,
        identity: uuid.UUID,
        payload: ProfileRoleUpdate,
        actor: Principal | None = None,
    ) -> Profile:
        """
        Change a profile's role (admin only).

        Role validation is enforced by the schema (member | admin).
        """
        profile = self.get_profile(session, identity)
        previous = profile.role
        profile.role = payload.role.value
        profile = self.repo.update(session, profile)
        logger.info(
            "Role of %s changed %s -> %s by %s",
            identity,
            previous,
            profile.role,
            actor.identity if actor else "maintenance",
        )
        return profile

    def set_active(
        self,
        session: Session,
        identity: uuid.UUID,
        payload: ProfileStatusUpdate,
        actor: Principal | None = None,
    ) -> Profile:
        """
        Activate or deactivate a profile (admin only).

        Admins cannot deactivate themselves, so at least the acting admin
        keeps access.
        """
        if actor is not None and actor.identity == identity and not payload.is_active:
            raise forbidden("admins cannot deactivate their own profile")

        profile = self.get_profile(session, identity)
        profile.is_active = payload.is_active
        profile = self.repo.update(session, profile)
        logger.info(
            "Profile %s is_active=%s set by %s",
            identity,
            profile.is_active,
            actor.identity if actor else "maintenance",
        )
        return profile
