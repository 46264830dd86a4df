from typing import Optional

from pydantic import NaiveDatetime
from sqlmodel import Field

from .base import BaseModelDB, naive_datetime_field


class RefreshToken(BaseModelDB, table=True):
    jti: str = Field(index=True, unique=True)
    user_id: int = Field(index=True, foreign_key="user.id")
    expires_at: NaiveDatetime = naive_datetime_field()
    revoked_at: Optional[NaiveDatetime] = naive_datetime_field(default=None)
    user_agent: Optional[str] = None
    ip: Optional[str] = None
