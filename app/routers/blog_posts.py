from app.core.policies import get_policy
from app.models.blog import BlogPost
from app.repositories.content_repo import ContentRepository
from app.routers.content import build_content_router
from app.schemas.blog import BlogPostCreate, BlogPostRead, BlogPostUpdate
from app.services.content_service import ContentService

policy = get_policy("blog_posts")
repo = ContentRepository(BlogPost, owner_field=policy.owner_field)
service = ContentService(repo, policy, slug_source="title")

router = build_content_router(
    prefix="/blog-posts",
    tag="Blog",
    service=service,
    create_schema=BlogPostCreate,
    update_schema=BlogPostUpdate,
    read_schema=BlogPostRead,
)
