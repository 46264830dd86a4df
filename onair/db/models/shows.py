from typing import Dict, List, Optional

from sqlalchemy import Column, JSON
from sqlmodel import Field

from .base import BaseModelDB


class Show(BaseModelDB, table=True):
    """Émission de la radio. Une demande d'artiste reste `pending` jusqu'à décision admin."""

    title: str
    slug: str = Field(index=True, unique=True)
    description: str = ""

    # Bloc artiste
    artist_name: str
    artist_bio: Optional[str] = None
    artist_email: Optional[str] = None
    artist_photo: Optional[str] = None
    social_links: Dict[str, str] = Field(default_factory=dict, sa_column=Column(JSON))

    image_asset_id: Optional[int] = Field(default=None, foreign_key="asset.id")
    audio_asset_id: Optional[int] = Field(default=None, foreign_key="asset.id")  # audio promo

    genres: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Grille
    day_of_week: Optional[str] = None
    time_slot: Optional[str] = None
    frequency: str = Field(default="irregular")  # weekly | biweekly | monthly | irregular

    request_status: str = Field(default="pending", index=True)  # pending | approved | rejected
    admin_notes: Optional[str] = None
    status: str = Field(default="inactive", index=True)  # active | inactive | archived
    featured: bool = Field(default=False)
    total_episodes: int = Field(default=0)

    created_by: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
