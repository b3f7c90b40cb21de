import logging
from datetime import timedelta
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from supabase import AuthError

from app.core.config import get_settings
from app.core.errors import forbidden, transient, unauthenticated
from app.core.identity_provider import ProviderIdentity
from app.core.roles import Principal, Role
from app.core.supabase_client import supabase_public
from app.database import get_session
from app.repositories.profile_repo import ProfileRepository
from app.repositories.session_repo import SessionRepository
from app.services.role_service import RoleResolver
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => a missing or non-Bearer Authorization header does
#   not raise; it resolves to the anonymous principal instead.
bearer_scheme = HTTPBearer(auto_error=False)

session_service = SessionService(
    SessionRepository(),
    ttl=timedelta(hours=settings.SESSION_TTL_HOURS),
)
role_resolver = RoleResolver(ProfileRepository())


# -------- Identity provider tokens (login only) --------


def decode_provider_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        AccessError(UNAUTHENTICATED): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise unauthenticated(f"provider token rejected: {exc}") from exc


def fetch_provider_claims(token: str) -> dict[str, Any]:
    """
    Ask Supabase Auth who the token belongs to.

    Used when the project signs tokens asymmetrically and no shared
    JWT secret is configured.
    """
    try:
        response = supabase_public().auth.get_user(token)
    except AuthError as exc:
        raise unauthenticated(f"provider token rejected: {exc}") from exc
    user = response.user if response else None
    if user is None:
        raise unauthenticated("provider returned no user for token")
    return {"sub": user.id, "email": user.email, "user_metadata": user.user_metadata}


def verify_provider_token(token: str) -> ProviderIdentity:
    """
    Turn an identity provider access token into a ProviderIdentity.

    Raises:
        AccessError(UNAUTHENTICATED): invalid token or missing/invalid sub.
    """
    if settings.SUPABASE_JWT_SECRET:
        claims = decode_provider_token(token)
    else:
        claims = fetch_provider_claims(token)

    if not claims.get("sub"):
        raise unauthenticated("provider token missing sub")
    try:
        return ProviderIdentity.from_claims(claims)
    except ValueError as exc:
        raise unauthenticated(f"invalid sub in provider token: {claims.get('sub')!r}") from exc


# -------- Application sessions --------


def bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Raw bearer token, or None when the header is missing or not Bearer."""
    if credentials is None:
        return None
    return credentials.credentials.strip() or None


def get_principal(
    token: str | None = Depends(bearer_token),
    session: Session = Depends(get_session),
) -> Principal:
    """
    Resolve the caller for this request.

    Flow:
      1. Validate the session token => identity or None.
      2. Resolve the identity's role from its profile.
      3. Anonymous role (no session, no profile, inactive) => anonymous
         principal with no identity, so ownership can never match.

    Raises:
        AccessError(TRANSIENT): the session/profile lookup failed or timed
            out. The request is denied; it is never let through.
    """
    try:
        identity = session_service.validate(session, token)
        role = role_resolver.resolve(session, identity)
    except SQLAlchemyError as exc:
        session.rollback()
        raise transient(f"principal lookup failed: {exc.__class__.__name__}: {exc}") from exc

    if role is Role.ANONYMOUS:
        return Principal.anonymous()
    return Principal(identity=identity, role=role)


def require_auth(principal: Principal = Depends(get_principal)) -> Principal:
    """
    Enforce authentication.

    Raises:
        AccessError(UNAUTHENTICATED): if the principal is anonymous.
    """
    if principal.is_anonymous:
        raise unauthenticated("authentication required")
    return principal


def require_admin(principal: Principal = Depends(require_auth)) -> Principal:
    """
    Enforce admin role.

    Raises:
        AccessError(FORBIDDEN): if role is not admin.
    """
    if not principal.is_admin:
        raise forbidden(f"admin required, identity={principal.identity} role={principal.role.value}")
    return principal
