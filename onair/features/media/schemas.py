from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from onair.db.models.assets import Asset

Collection = Literal["episode", "show", "post"]
Slot = Literal["audio", "image"]


# ---------- OUT ----------

class AssetOut(BaseModel):
    id: int
    key: str
    url: str
    filename: Optional[str] = None
    size: Optional[int] = None
    duration: Optional[float] = None
    bitrate: Optional[int] = None
    mime_type: Optional[str] = None
    uploaded_at: datetime

    @classmethod
    def from_model(cls, asset: Optional[Asset]) -> Optional["AssetOut"]:
        if asset is None:
            return None
        return cls(
            id=asset.id,
            key=asset.object_key,
            url=asset.url,
            filename=asset.filename,
            size=asset.bytes,
            duration=asset.duration,
            bitrate=asset.bitrate,
            mime_type=asset.mime_type,
            uploaded_at=asset.uploaded_at,
        )


# ---------- Handshake upload direct (camelCase côté client) ----------

class PresignIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filename: Optional[str] = Field(default=None, max_length=255)
    content_type: Optional[str] = Field(default=None, alias="contentType")
    slot: Slot = "audio"


class PresignOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    presigned_url: str = Field(alias="presignedUrl")
    key: str
    file_url: str = Field(alias="fileUrl")
    method: str = "PUT"
    fields: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    expires_in: int = Field(alias="expiresIn")


class ConfirmIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(min_length=1)
    file_url: str = Field(alias="fileUrl", min_length=1)
    filename: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)
    duration: Optional[float] = Field(default=None, ge=0, description="Secondes")
    bitrate: Optional[int] = Field(default=None, ge=0, description="kbps")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    slot: Slot = "audio"
