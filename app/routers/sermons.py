from app.core.policies import get_policy
from app.models.sermon import Sermon
from app.repositories.content_repo import ContentRepository
from app.routers.content import build_content_router
from app.schemas.sermon import SermonCreate, SermonRead, SermonUpdate
from app.services.content_service import ContentService

policy = get_policy("sermons")
repo = ContentRepository(Sermon, owner_field=policy.owner_field)
service = ContentService(repo, policy, slug_source="title")

router = build_content_router(
    prefix="/sermons",
    tag="Sermons",
    service=service,
    create_schema=SermonCreate,
    update_schema=SermonUpdate,
    read_schema=SermonRead,
)
