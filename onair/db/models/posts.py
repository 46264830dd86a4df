from typing import Optional

from pydantic import NaiveDatetime
from sqlmodel import Field

from .base import BaseModelDB, naive_datetime_field


class Post(BaseModelDB, table=True):
    title: str
    slug: str = Field(index=True, unique=True)
    content: str
    excerpt: Optional[str] = None
    meta_description: Optional[str] = None
    image_asset_id: Optional[int] = Field(default=None, foreign_key="asset.id")
    status: str = Field(default="draft", index=True)  # draft | published | archived
    featured: bool = Field(default=False)
    category: str = Field(default="news")  # news | event | announcement | blog
    author_id: int = Field(foreign_key="user.id", index=True)
    published_at: Optional[NaiveDatetime] = naive_datetime_field(default=None)
