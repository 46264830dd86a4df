import logging
import math
from typing import List, Optional, Sequence

from onair.core.errors import NotFoundError, ValidationFailure
from onair.db.models.base import utcnow
from onair.db.models.posts import Post
from onair.db.models.users import User
from onair.db.repositories.posts import PostRepository
from onair.features.media.services import AssetService
from onair.features.posts.schemas import PostCreateIn, PostOut, PostPage, PostUpdateIn
from onair.utils.slugs import slugify, unique_slug

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 5


class PostService:
    """
    Actualités du site.
    - Public : posts publiés (pagination, slug, mis en avant).
    - Admin : CRUD complet, brouillons et archives compris.
    Le slug suit le titre ; `published_at` est posé à la première publication.
    """

    def __init__(self, *, repo: PostRepository, asset_svc: AssetService):
        self.repo = repo
        self.asset_svc = asset_svc

    # -------- helpers --------

    def to_out(self, post: Post) -> PostOut:
        return PostOut.build(post, self.asset_svc.for_documents([post]))

    def to_out_list(self, posts: Sequence[Post]) -> List[PostOut]:
        assets = self.asset_svc.for_documents(posts)
        return [PostOut.build(p, assets) for p in posts]

    def _get(self, post_id: int) -> Post:
        post = self.repo.get(post_id)
        if not post:
            raise NotFoundError("Post not found")
        return post

    def _slug_for(self, title: str, *, exclude_id: Optional[int] = None) -> str:
        if not slugify(title):
            raise ValidationFailure("Title must contain at least one letter or digit")
        return unique_slug(title, taken=lambda s: self.repo.slug_taken(s, exclude_id=exclude_id))

    # -------- Public --------

    def list_published(
        self,
        *,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        page: int = 1,
        limit: int = 20,
    ) -> PostPage:
        items, total = self.repo.paginate(
            status="published",
            category=category,
            featured=featured,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return PostPage(
            items=self.to_out_list(items),
            total=total,
            page=page,
            pages=math.ceil(total / limit) if limit else 0,
        )

    def get_published_by_slug(self, slug: str) -> Post:
        post = self.repo.get_by_slug(slug, status="published")
        if not post:
            raise NotFoundError("Post not found")
        return post

    def list_featured(self) -> Sequence[Post]:
        items, _ = self.repo.paginate(status="published", featured=True, limit=FEATURED_LIMIT)
        return items

    # -------- Admin --------

    def list_all(self, *, status: Optional[str] = None, category: Optional[str] = None) -> Sequence[Post]:
        items, _ = self.repo.paginate(status=status, category=category, limit=10_000)
        return sorted(items, key=lambda p: p.created_at, reverse=True)

    def get_one(self, post_id: int) -> Post:
        return self._get(post_id)

    def create(self, payload: PostCreateIn, *, user: User) -> Post:
        data = payload.model_dump()
        post = self.repo.create(
            **data,
            slug=self._slug_for(payload.title),
            author_id=user.id,
            published_at=utcnow() if payload.status == "published" else None,
        )
        logger.info("Post #%s '%s' created by user #%s", post.id, post.slug, user.id)
        return post

    def update(self, post_id: int, payload: PostUpdateIn) -> Post:
        post = self._get(post_id)
        changes = payload.model_dump(exclude_unset=True)
        for field in ("title", "content", "status", "featured", "category"):
            if field in changes and changes[field] is None:
                changes.pop(field)

        if "title" in changes and changes["title"] != post.title:
            changes["slug"] = self._slug_for(changes["title"], exclude_id=post.id)
        if changes.get("status") == "published" and post.published_at is None:
            changes["published_at"] = utcnow()

        return self.repo.update(post, **changes)

    def delete(self, post_id: int) -> None:
        post = self._get(post_id)
        self.asset_svc.remove_all(post)
        self.repo.delete(post, commit=False)
        self.repo.session.commit()
        logger.info("Post #%s deleted", post_id)
