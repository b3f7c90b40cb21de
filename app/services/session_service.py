import hashlib
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models.session import AuthSession
from app.repositories.session_repo import SessionRepository

logger = logging.getLogger(__name__)

# Shape of tokens we issue (secrets.token_urlsafe); anything else is malformed.
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,256}$")

TOKEN_BYTES = 32


def hash_token(token: str) -> str:
    """Digest under which a token is stored; the raw token never hits the database."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps read back from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SessionService:
    """
    Issues, validates and revokes bearer-token sessions.

    validate() never raises for expected conditions: a missing, malformed,
    unknown, revoked or expired token all resolve to None ("no identity").
    Only backend faults (SQLAlchemyError) propagate, and callers treat
    those as a denial.
    """

    def __init__(self, repo: SessionRepository, ttl: timedelta):
        self.repo = repo
        self.ttl = ttl

    # ----- Login / logout -----

    def issue(
        self,
        session: Session,
        identity: uuid.UUID,
        now: datetime | None = None,
    ) -> tuple[str, AuthSession]:
        """
        Create a session for `identity`.

        Returns:
            (raw token, stored session). The raw token is only ever
            returned here.
        """
        now = now or datetime.now(timezone.utc)
        token = secrets.token_urlsafe(TOKEN_BYTES)
        record = AuthSession(
            token_hash=hash_token(token),
            identity=identity,
            issued_at=now,
            expires_at=now + self.ttl,
        )
        record = self.repo.create(session, record)
        logger.info("Issued session for identity=%s expiring %s", identity, record.expires_at)
        return token, record

    def revoke(self, session: Session, token: str | None, now: datetime | None = None) -> bool:
        """
        Revoke the session behind `token`.

        Idempotent: unknown or already-revoked tokens are a no-op.

        Returns:
            True if a live session was revoked.
        """
        if not token or not TOKEN_PATTERN.match(token):
            return False
        record = self.repo.get_by_hash(session, hash_token(token))
        if record is None or record.revoked_at is not None:
            return False
        self.repo.mark_revoked(session, record, now or datetime.now(timezone.utc))
        logger.info("Revoked session for identity=%s", record.identity)
        return True

    # ----- Validation -----

    def validate(
        self,
        session: Session,
        token: str | None,
        now: datetime | None = None,
    ) -> uuid.UUID | None:
        """
        Resolve a bearer token to its identity.

        Algorithm:
          1. Missing/empty/malformed token => None (no store round-trip).
          2. Unknown token => None.
          3. Revoked => None.
          4. expires_at <= now => None, and the session is marked revoked
             (lazy expiry, best effort).
          5. Otherwise => the session's identity.

        Clock skew is not compensated; expiry is a hard boundary.
        """
        if not token or not TOKEN_PATTERN.match(token):
            return None

        record = self.repo.get_by_hash(session, hash_token(token))
        if record is None:
            return None

        if record.revoked_at is not None:
            return None

        now = now or datetime.now(timezone.utc)
        if as_utc(record.expires_at) <= now:
            self._expire(session, record, now)
            return None

        return record.identity

    def _expire(self, session: Session, record: AuthSession, now: datetime) -> None:
        # The caller already gets "no identity"; failing to flag the row only
        # means the next lookup re-checks expires_at.
        try:
            self.repo.mark_revoked(session, record, now)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Could not flag expired session for identity=%s: %s", record.identity, exc)

    # ----- Maintenance -----

    def purge(self, session: Session, older_than: timedelta, now: datetime | None = None) -> int:
        """Delete sessions expired or revoked more than `older_than` ago."""
        now = now or datetime.now(timezone.utc)
        removed = self.repo.purge(session, now - older_than)
        logger.info("Purged %d stale sessions", removed)
        return removed
