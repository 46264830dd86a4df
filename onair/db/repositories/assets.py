from typing import Optional, Sequence

from sqlalchemy import or_
from sqlmodel import select

from onair.db.models.assets import Asset, OrphanedObject
from onair.db.models.base import utcnow
from onair.db.models.episodes import Episode
from onair.db.models.posts import Post
from onair.db.models.shows import Show
from onair.db.repositories.base import BaseRepository


class AssetRepository(BaseRepository[Asset]):
    model = Asset

    def get_by_key(self, object_key: str) -> Optional[Asset]:
        return self.session.exec(
            select(self.model).where(self.model.object_key == object_key)
        ).first()

    def is_referenced(self, asset_id: int) -> bool:
        """Vrai si un slot (audio ou image) d'un show, épisode ou post pointe sur cet asset."""
        for model in (Show, Episode, Post):
            columns = [getattr(model, f) for f in ("audio_asset_id", "image_asset_id") if hasattr(model, f)]
            hit = self.session.exec(
                select(model.id).where(or_(*(c == asset_id for c in columns)))
            ).first()
            if hit is not None:
                return True
        return False


class OrphanedObjectRepository(BaseRepository[OrphanedObject]):
    model = OrphanedObject

    def record(self, object_key: str, reason: str, *, commit: bool = True) -> OrphanedObject:
        return self.create(object_key=object_key, reason=reason[:500], commit=commit)

    def list_unresolved(self, limit: int = 500) -> Sequence[OrphanedObject]:
        return self.session.exec(
            select(self.model)
            .where(self.model.resolved_at.is_(None))
            .order_by(self.model.id.asc())
            .limit(limit)
        ).all()

    def mark_resolved(self, orphan: OrphanedObject) -> OrphanedObject:
        return self.update(orphan, resolved_at=utcnow())
