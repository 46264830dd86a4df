from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from onair.db.models.assets import Asset
from onair.db.models.shows import Show
from onair.features.media.schemas import AssetOut

RequestStatus = Literal["pending", "approved", "rejected"]
ShowStatus = Literal["active", "inactive", "archived"]
Frequency = Literal["weekly", "biweekly", "monthly", "irregular"]


# ---------- IN / UPDATE ----------

class ShowFields(BaseModel):
    description: Optional[str] = None
    artist_bio: Optional[str] = None
    artist_email: Optional[str] = None
    artist_photo: Optional[str] = None
    social_links: Optional[Dict[str, str]] = None
    genres: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    day_of_week: Optional[str] = None
    time_slot: Optional[str] = None
    frequency: Optional[Frequency] = None


class ShowRequestIn(ShowFields):
    """Demande d'un artiste : statut et mise en avant sont imposés côté serveur."""
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    artist_name: Optional[str] = None


class ShowCreateIn(ShowFields):
    title: str = Field(min_length=1, max_length=200)
    artist_name: str = Field(min_length=1)
    slug: Optional[str] = None
    request_status: RequestStatus = "approved"
    status: ShowStatus = "active"
    featured: bool = False
    created_by: Optional[int] = None  # admin : créer pour un artiste


class ShowUpdateIn(ShowFields):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    artist_name: Optional[str] = None
    slug: Optional[str] = None
    request_status: Optional[RequestStatus] = None
    admin_notes: Optional[str] = None
    status: Optional[ShowStatus] = None
    featured: Optional[bool] = None
    created_by: Optional[int] = None


class ApproveIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    admin_notes: Optional[str] = Field(default=None, alias="adminNotes")


class RejectIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    admin_notes: Optional[str] = Field(default=None, alias="adminNotes")


# ---------- OUT ----------

class ShowOut(BaseModel):
    id: int
    title: str
    slug: str
    description: str
    artist_name: str
    artist_bio: Optional[str] = None
    artist_email: Optional[str] = None
    artist_photo: Optional[str] = None
    social_links: Dict[str, str] = {}
    image: Optional[AssetOut] = None
    audio: Optional[AssetOut] = None
    genres: List[str] = []
    tags: List[str] = []
    day_of_week: Optional[str] = None
    time_slot: Optional[str] = None
    frequency: str
    request_status: str
    admin_notes: Optional[str] = None
    status: str
    featured: bool
    total_episodes: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def build(cls, show: Show, assets: Dict[int, Asset]) -> "ShowOut":
        data = show.model_dump(exclude={"image_asset_id", "audio_asset_id"})
        data["social_links"] = data.get("social_links") or {}
        data["genres"] = data.get("genres") or []
        data["tags"] = data.get("tags") or []
        return cls(
            **data,
            image=AssetOut.from_model(assets.get(show.image_asset_id)) if show.image_asset_id else None,
            audio=AssetOut.from_model(assets.get(show.audio_asset_id)) if show.audio_asset_id else None,
        )
