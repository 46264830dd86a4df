from typing import Optional, Sequence

from sqlmodel import select

from onair.db.models.episodes import Episode
from onair.db.models.shows import Show
from onair.db.repositories.base import BaseRepository


class EpisodeRepository(BaseRepository[Episode]):
    model = Episode

    def list_for_show(
        self,
        show_id: int,
        *,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[Episode]:
        statement = select(self.model).where(self.model.show_id == show_id)
        if status:
            statement = statement.where(self.model.status == status)
        statement = statement.order_by(self.model.air_date.desc()).offset(offset).limit(limit)
        return self.session.exec(statement).all()

    def search(
        self,
        *,
        owner_id: Optional[int] = None,
        show_id: Optional[int] = None,
        status: Optional[str] = None,
        featured: Optional[bool] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[Episode]:
        statement = select(self.model)
        if owner_id is not None:
            statement = statement.join(Show, Show.id == self.model.show_id).where(Show.created_by == owner_id)
        if show_id is not None:
            statement = statement.where(self.model.show_id == show_id)
        if status:
            statement = statement.where(self.model.status == status)
        if featured is not None:
            statement = statement.where(self.model.featured == featured)
        statement = statement.order_by(self.model.air_date.desc()).offset(offset).limit(limit)
        return self.session.exec(statement).all()
