from app.core.policies import get_policy
from app.models.event import Event
from app.repositories.content_repo import ContentRepository
from app.routers.content import build_content_router
from app.schemas.event import EventCreate, EventRead, EventUpdate
from app.services.content_service import ContentService

policy = get_policy("events")
repo = ContentRepository(Event, owner_field=policy.owner_field)
service = ContentService(repo, policy, slug_source="title")

router = build_content_router(
    prefix="/events",
    tag="Events",
    service=service,
    create_schema=EventCreate,
    update_schema=EventUpdate,
    read_schema=EventRead,
)
