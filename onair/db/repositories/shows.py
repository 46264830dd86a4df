from typing import Optional, Sequence

from sqlmodel import select

from onair.db.models.shows import Show
from onair.db.repositories.base import BaseRepository


class ShowRepository(BaseRepository[Show]):
    model = Show

    def get_by_slug(self, slug: str) -> Optional[Show]:
        return self.session.exec(
            select(self.model).where(self.model.slug == slug)
        ).first()

    def slug_taken(self, slug: str, *, exclude_id: Optional[int] = None) -> bool:
        statement = select(self.model.id).where(self.model.slug == slug)
        if exclude_id is not None:
            statement = statement.where(self.model.id != exclude_id)
        return self.session.exec(statement).first() is not None

    def search(
        self,
        *,
        created_by: Optional[int] = None,
        status: Optional[str] = None,
        request_status: Optional[str] = None,
        featured: Optional[bool] = None,
        genre: Optional[str] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[Show]:
        statement = select(self.model)
        if created_by is not None:
            statement = statement.where(self.model.created_by == created_by)
        if status:
            statement = statement.where(self.model.status == status)
        if request_status:
            statement = statement.where(self.model.request_status == request_status)
        if featured is not None:
            statement = statement.where(self.model.featured == featured)
        statement = statement.order_by(self.model.created_at.desc())
        shows = self.session.exec(statement).all()
        # genres est une colonne JSON : filtrage côté Python, portable entre moteurs
        if genre:
            shows = [s for s in shows if genre in (s.genres or [])]
        return shows[offset:offset + limit]
