import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_auth, require_admin
from app.core.identity_provider import IdentitySource, SupabaseIdentityProvider
from app.core.roles import Principal
from app.database import get_session
from app.repositories.profile_repo import ProfileRepository
from app.schemas.auth import ReconcileRead
from app.schemas.profile import (
    ProfileRead,
    ProfileRoleUpdate,
    ProfileStatusUpdate,
    ProfileUpdate,
)
from app.services.profile_service import ProfileService
from app.services.profile_sync_service import ProfileSyncService

router = APIRouter(prefix="/profiles", tags=["Profiles"])

repo = ProfileRepository()
service = ProfileService(repo)
sync_service = ProfileSyncService(repo)


def get_identity_source() -> IdentitySource:
    """Identity listing used by reconciliation (Supabase admin API)."""
    return SupabaseIdentityProvider()


# -------- Self profile --------


@router.get("/me", response_model=ProfileRead)
def read_me(
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
):
    """
    Return the caller's profile.

    Auth:
      - Requires a valid session and an active profile.
    """
    return service.get_me(session, principal)


@router.patch("/me", response_model=ProfileRead)
def update_me(
    payload: ProfileUpdate,
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
):
    """
    Update the caller's profile (partial update).

    Only `display_name` and `email` are editable.
    """
    return service.update_me(session, principal, payload)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[ProfileRead],
    dependencies=[Depends(require_admin)],
)
def list_profiles(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    only_active: bool = False,
):
    """
    List profiles (admin only).

    Pagination via skip/limit.
    """
    return service.list_profiles(session, skip, limit, only_active)


@router.post(
    "/reconcile",
    response_model=ReconcileRead,
    dependencies=[Depends(require_admin)],
)
def reconcile_profiles(
    session: Session = Depends(get_session),
    source: IdentitySource = Depends(get_identity_source),
):
    """
    Create default profiles for provider identities that have none (admin only).
    """
    report = sync_service.reconcile(session, source)
    return ReconcileRead(
        checked=report.checked,
        created=report.created,
        failed=report.failed,
        unresolved_sessions=report.unresolved_sessions,
    )


@router.get(
    "/{identity}",
    response_model=ProfileRead,
    dependencies=[Depends(require_admin)],
)
def get_profile(
    identity: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a specific profile by identity (admin only).
    """
    return service.get_profile(session, identity)


@router.patch("/{identity}/role", response_model=ProfileRead)
def change_role(
    identity: uuid.UUID,
    payload: ProfileRoleUpdate,
    session: Session = Depends(get_session),
    admin: Principal = Depends(require_admin),
):
    """
    Update a profile's role (admin only).

    Allowed roles: member, admin.
    """
    return service.update_role(session, identity, payload, actor=admin)


@router.patch("/{identity}/status", response_model=ProfileRead)
def change_status(
    identity: uuid.UUID,
    payload: ProfileStatusUpdate,
    session: Session = Depends(get_session),
    admin: Principal = Depends(require_admin),
):
    """
    Activate or deactivate a profile (admin only).

    Deactivated profiles resolve as anonymous on every request.
    """
    return service.set_active(session, identity, payload, actor=admin)
