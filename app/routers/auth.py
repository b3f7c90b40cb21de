from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import (
    bearer_token,
    get_principal,
    role_resolver,
    session_service,
    verify_provider_token,
)
from app.core.roles import Principal
from app.database import get_session
from app.repositories.profile_repo import ProfileRepository
from app.schemas.auth import LoginRequest, SessionRead, WhoAmI
from app.services.profile_sync_service import ProfileSyncService

router = APIRouter(prefix="/auth", tags=["Auth"])

sync_service = ProfileSyncService(ProfileRepository())


@router.post("/login", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
):
    """
    Exchange an identity provider access token for an application session.

    Flow:
      1. Verify the provider token (Supabase JWT).
      2. Synchronize the profile (first login creates it). A failure here
         is logged and does not block login; the caller resolves as
         anonymous until reconciliation repairs the profile.
      3. Issue an opaque session token.
    """
    identity = verify_provider_token(payload.access_token)
    sync_service.try_sync_identity(session, identity)

    token, record = session_service.issue(session, identity.id)
    role = role_resolver.resolve(session, identity.id)
    return SessionRead(
        access_token=token,
        expires_at=record.expires_at,
        identity=identity.id,
        role=role,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    token: str | None = Depends(bearer_token),
    session: Session = Depends(get_session),
):
    """
    Revoke the presented session. Idempotent.
    """
    session_service.revoke(session, token)
    return None


@router.get("/session", response_model=WhoAmI)
def current_session(principal: Principal = Depends(get_principal)):
    """
    Return the resolved caller; role is "anonymous" without a valid session.
    """
    return WhoAmI(
        identity=principal.identity,
        role=principal.role,
        authenticated=not principal.is_anonymous,
    )
