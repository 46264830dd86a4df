from typing import Optional, Sequence, Tuple

from sqlmodel import func, select

from onair.db.models.posts import Post
from onair.db.repositories.base import BaseRepository


class PostRepository(BaseRepository[Post]):
    model = Post

    def get_by_slug(self, slug: str, *, status: Optional[str] = None) -> Optional[Post]:
        statement = select(self.model).where(self.model.slug == slug)
        if status:
            statement = statement.where(self.model.status == status)
        return self.session.exec(statement).first()

    def slug_taken(self, slug: str, *, exclude_id: Optional[int] = None) -> bool:
        statement = select(self.model.id).where(self.model.slug == slug)
        if exclude_id is not None:
            statement = statement.where(self.model.id != exclude_id)
        return self.session.exec(statement).first() is not None

    def paginate(
        self,
        *,
        status: Optional[str] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        offset: int = 0,
        limit: int = 10,
    ) -> Tuple[Sequence[Post], int]:
        """Retourne (page, total) avec les mêmes filtres."""
        filters = []
        if status:
            filters.append(self.model.status == status)
        if category:
            filters.append(self.model.category == category)
        if featured is not None:
            filters.append(self.model.featured == featured)

        total = self.session.exec(select(func.count(self.model.id)).where(*filters)).one()
        items = self.session.exec(
            select(self.model)
            .where(*filters)
            .order_by(self.model.published_at.desc(), self.model.created_at.desc())
            .offset(offset)
            .limit(limit)
        ).all()
        return items, total
