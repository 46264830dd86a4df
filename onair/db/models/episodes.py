from typing import Optional

from pydantic import NaiveDatetime
from sqlmodel import Field

from .base import BaseModelDB, naive_datetime_field


class Episode(BaseModelDB, table=True):
    show_id: int = Field(foreign_key="show.id", index=True)
    title: str
    description: Optional[str] = None
    air_date: NaiveDatetime = naive_datetime_field()
    duration: Optional[int] = Field(default=None, description="Durée en minutes")
    status: str = Field(default="draft", index=True)  # draft | published | archived
    featured: bool = Field(default=False)

    audio_asset_id: Optional[int] = Field(default=None, foreign_key="asset.id")
    image_asset_id: Optional[int] = Field(default=None, foreign_key="asset.id")

    mixcloud_url: Optional[str] = None
    youtube_url: Optional[str] = None
    spotify_url: Optional[str] = None

    # Sous-état Mixcloud
    mixcloud_status: str = Field(default="pending")  # pending | uploading | uploaded | failed
    mixcloud_key: Optional[str] = None
    mixcloud_uploaded_at: Optional[NaiveDatetime] = naive_datetime_field(default=None)
    mixcloud_error: Optional[str] = None

    created_by: Optional[int] = Field(default=None, foreign_key="user.id")
    updated_by: Optional[int] = Field(default=None, foreign_key="user.id")
    plays: int = Field(default=0)
    downloads: int = Field(default=0)
