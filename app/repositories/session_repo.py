from datetime import datetime

from sqlalchemy import delete, or_
from sqlmodel import Session

from app.models.session import AuthSession


class SessionRepository:
    """
    Data access layer for AuthSession.

    - Pure DB operations, keyed by token digest.
    - Only the login/logout flow and lazy expiry write here.
    """

    def get_by_hash(self, session: Session, token_hash: str) -> AuthSession | None:
        return session.get(AuthSession, token_hash)

    def create(self, session: Session, auth_session: AuthSession) -> AuthSession:
        session.add(auth_session)
        session.commit()
        session.refresh(auth_session)
        return auth_session

    def mark_revoked(self, session: Session, auth_session: AuthSession, when: datetime) -> AuthSession:
        auth_session.revoked_at = when
        session.add(auth_session)
        session.commit()
        session.refresh(auth_session)
        return auth_session

    def purge(self, session: Session, cutoff: datetime) -> int:
        """Delete sessions that expired or were revoked before `cutoff`."""
        stmt = (
            delete(AuthSession)
            .where(or_(AuthSession.expires_at < cutoff, AuthSession.revoked_at < cutoff))
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        session.commit()
        session.expire_all()
        return result.rowcount
