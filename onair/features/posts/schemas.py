from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from onair.db.models.assets import Asset
from onair.db.models.posts import Post
from onair.features.media.schemas import AssetOut

PostStatus = Literal["draft", "published", "archived"]
Category = Literal["news", "event", "announcement", "blog"]


# ---------- IN / UPDATE ----------

class PostCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    status: PostStatus = "draft"
    featured: bool = False
    category: Category = "news"


class PostUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    excerpt: Optional[str] = Field(default=None, max_length=500)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    status: Optional[PostStatus] = None
    featured: Optional[bool] = None
    category: Optional[Category] = None


# ---------- OUT ----------

class PostOut(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    meta_description: Optional[str] = None
    image: Optional[AssetOut] = None
    status: str
    featured: bool
    category: str
    author_id: int
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def build(cls, post: Post, assets: Dict[int, Asset]) -> "PostOut":
        data = post.model_dump(exclude={"image_asset_id"})
        return cls(
            **data,
            image=AssetOut.from_model(assets.get(post.image_asset_id)) if post.image_asset_id else None,
        )


class PostPage(BaseModel):
    items: List[PostOut]
    total: int
    page: int
    pages: int
