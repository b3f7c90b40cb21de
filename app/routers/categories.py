from app.core.policies import get_policy
from app.models.category import Category
from app.repositories.content_repo import ContentRepository
from app.routers.content import build_content_router
from app.schemas.category import CategoryCreate, CategoryRead, CategoryUpdate
from app.services.content_service import ContentService

policy = get_policy("categories")
repo = ContentRepository(Category, owner_field=policy.owner_field)
service = ContentService(repo, policy, slug_source="name")

router = build_content_router(
    prefix="/categories",
    tag="Categories",
    service=service,
    create_schema=CategoryCreate,
    update_schema=CategoryUpdate,
    read_schema=CategoryRead,
)
