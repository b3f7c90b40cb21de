import uuid
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, select

from app.models.profile import Profile, utcnow
from app.models.session import AuthSession


class ProfileRepository:
    """
    Data access layer for Profile.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Basic CRUD -----

    def get_by_id(self, session: Session, identity: uuid.UUID) -> Profile | None:
        """Return a Profile by identity, or None if not found."""
        return session.get(Profile, identity)

    def get_by_email(self, session: Session, email: str) -> Profile | None:
        """Return a Profile by unique email, or None if not found."""
        stmt = select(Profile).where(Profile.email == email)
        return session.exec(stmt).first()

    def list_profiles(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = False,
    ) -> list[Profile]:
        """
        Paginated profile listing, oldest first.

        Args:
            skip: offset rows (for paging)
            limit: max number of rows returned
            only_active: hide deactivated profiles
        """
        stmt = select(Profile)
        if only_active:
            stmt = stmt.where(Profile.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Profile.created_at).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def existing_ids(self, session: Session, identities: list[uuid.UUID]) -> set[uuid.UUID]:
        """Return which of the given identities already have a profile."""
        if not identities:
            return set()
        stmt = select(Profile.id).where(Profile.id.in_(identities))
        return set(session.exec(stmt).all())

    def update(self, session: Session, profile: Profile) -> Profile:
        """Persist changes to an existing Profile."""
        profile.updated_at = utcnow()
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    # ----- Synchronization -----

    def insert_if_absent(
        self,
        session: Session,
        identity: uuid.UUID,
        email: str | None,
        display_name: str,
        role: str,
    ) -> bool:
        """
        Insert a profile unless one already conflicts on identity or email.

        Uses INSERT ... ON CONFLICT DO NOTHING so two concurrent first
        logins for the same identity cannot produce two rows.

        Returns:
            True if a row was inserted.
        """
        dialect = session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        now = utcnow()
        stmt = (
            insert(Profile)
            .values(
                id=identity,
                email=email,
                display_name=display_name,
                role=role,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing()
        )
        result = session.execute(stmt)
        session.commit()
        return result.rowcount == 1

    def rekey(self, session: Session, old_identity: uuid.UUID, new_identity: uuid.UUID) -> None:
        """Move a pre-provisioned profile onto the identity the provider actually issued."""
        stmt = (
            update(Profile)
            .where(Profile.id == old_identity)
            .values(id=new_identity, updated_at=utcnow())
        )
        session.execute(stmt)
        session.commit()
        session.expire_all()

    def session_identities_without_profile(
        self,
        session: Session,
        now: datetime,
    ) -> list[uuid.UUID]:
        """Identities holding an unexpired, unrevoked session but no profile row."""
        stmt = (
            select(AuthSession.identity)
            .outerjoin(Profile, Profile.id == AuthSession.identity)
            .where(Profile.id == None)  # noqa: E711
            .where(AuthSession.revoked_at == None)  # noqa: E711
            .where(AuthSession.expires_at > now)
            .distinct()
        )
        return list(session.exec(stmt).all())
