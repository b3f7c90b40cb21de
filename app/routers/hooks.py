import hmac
import logging

from fastapi import APIRouter, Depends, Header
from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import forbidden
from app.core.identity_provider import ProviderIdentity
from app.database import get_session
from app.repositories.profile_repo import ProfileRepository
from app.schemas.auth import HookAck, IdentityCreatedEvent
from app.services.profile_sync_service import ProfileSyncService

router = APIRouter(prefix="/hooks", tags=["Hooks"])

logger = logging.getLogger(__name__)

sync_service = ProfileSyncService(ProfileRepository())


def verify_hook_secret(x_hook_secret: str | None = Header(default=None)) -> None:
    """
    Authenticate the identity provider's webhook by shared secret.

    The hook is disabled when AUTH_HOOK_SECRET is unset.
    """
    expected = get_settings().AUTH_HOOK_SECRET
    if not expected:
        raise forbidden("identity hook disabled: AUTH_HOOK_SECRET not configured")
    if not x_hook_secret or not hmac.compare_digest(x_hook_secret, expected):
        raise forbidden("identity hook called with a bad secret")


@router.post(
    "/identity-created",
    response_model=HookAck,
    dependencies=[Depends(verify_hook_secret)],
)
def identity_created(
    event: IdentityCreatedEvent,
    session: Session = Depends(get_session),
):
    """
    Create the profile for a newly created identity.

    Always acknowledges the provider: a sync failure must not abort
    identity creation. It is logged and repaired by reconciliation.
    """
    try:
        identity = ProviderIdentity.from_hook_record(event.record)
    except ValueError:
        logger.warning("identity-created hook with unusable record id=%r", event.record.get("id"))
        return HookAck(synced=False)

    profile = sync_service.try_sync_identity(session, identity)
    return HookAck(synced=profile is not None, identity=identity.id)
