from datetime import datetime
from typing import Dict, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from onair.db.models.assets import Asset
from onair.db.models.episodes import Episode
from onair.features.media.schemas import AssetOut

EpisodeStatus = Literal["draft", "published", "archived"]

# Hôtes acceptés pour les liens externes
LINK_HOSTS = {
    "mixcloud_url": ("mixcloud.com",),
    "youtube_url": ("youtube.com", "youtu.be"),
    "spotify_url": ("spotify.com",),
}


def _check_host(value: Optional[str], hosts) -> Optional[str]:
    if value is None or value == "":
        return None
    parsed = urlparse(value)
    host = (parsed.hostname or "").lower()
    if parsed.scheme not in {"http", "https"} or not any(host == h or host.endswith("." + h) for h in hosts):
        raise ValueError(f"URL must point to {' or '.join(hosts)}")
    return value


class _EpisodeLinks(BaseModel):
    mixcloud_url: Optional[str] = None
    youtube_url: Optional[str] = None
    spotify_url: Optional[str] = None

    @field_validator("mixcloud_url", "youtube_url", "spotify_url")
    @classmethod
    def _validate_link(cls, value, info):
        return _check_host(value, LINK_HOSTS[info.field_name])


# ---------- IN / UPDATE ----------

class EpisodeCreateIn(_EpisodeLinks):
    show_id: int
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    air_date: datetime
    duration: Optional[int] = Field(default=None, ge=0, description="Minutes")
    status: EpisodeStatus = "draft"
    featured: bool = False


class EpisodeUpdateIn(_EpisodeLinks):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    air_date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    status: Optional[EpisodeStatus] = None
    featured: Optional[bool] = None


# ---------- OUT ----------

class EpisodeOut(BaseModel):
    id: int
    show_id: int
    title: str
    description: Optional[str] = None
    air_date: datetime
    duration: Optional[int] = None
    status: str
    featured: bool
    audio: Optional[AssetOut] = None
    image: Optional[AssetOut] = None
    mixcloud_url: Optional[str] = None
    youtube_url: Optional[str] = None
    spotify_url: Optional[str] = None
    mixcloud_status: str
    mixcloud_key: Optional[str] = None
    mixcloud_uploaded_at: Optional[datetime] = None
    mixcloud_error: Optional[str] = None
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    plays: int
    downloads: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def build(cls, episode: Episode, assets: Dict[int, Asset]) -> "EpisodeOut":
        data = episode.model_dump(exclude={"audio_asset_id", "image_asset_id"})
        return cls(
            **data,
            audio=AssetOut.from_model(assets.get(episode.audio_asset_id)) if episode.audio_asset_id else None,
            image=AssetOut.from_model(assets.get(episode.image_asset_id)) if episode.image_asset_id else None,
        )


class MixcloudStatusOut(BaseModel):
    status: str
    url: Optional[str] = None
    key: Optional[str] = None
    embed_url: Optional[str] = None
    embed_html: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    error: Optional[str] = None
    available: Optional[bool] = None  # la cloudcast existe encore côté Mixcloud
    play_count: Optional[int] = None
