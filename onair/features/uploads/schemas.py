from typing import Optional

from pydantic import BaseModel

from onair.features.episodes.schemas import EpisodeOut
from onair.features.media.schemas import AssetOut
from onair.features.posts.schemas import PostOut
from onair.features.shows.schemas import ShowOut


class ConfirmOut(BaseModel):
    """Réponse du confirm : le document mis à jour sous la clé de sa collection."""
    message: str
    asset: Optional[AssetOut] = None
    show: Optional[ShowOut] = None
    episode: Optional[EpisodeOut] = None
    post: Optional[PostOut] = None


class LocalUploadOut(BaseModel):
    key: str
    size: int
