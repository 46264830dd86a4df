"""
➡️ But : Définir la structure des tables de la base (ORM).

Représente les comptes : artistes (demandent des émissions) et admins (gèrent tout).

🔹 Avantages :

Un compte Google (auth_provider="google") n'a pas de mot de passe local.
"""

from typing import Optional

from pydantic import NaiveDatetime
from sqlmodel import Field

from .base import BaseModelDB, naive_datetime_field


class User(BaseModelDB, table=True):
    email: str = Field(index=True, unique=True)
    hashed_password: Optional[str] = Field(default=None)
    name: str
    role: str = Field(default="artist")  # artist | admin
    auth_provider: str = Field(default="local")  # local | google
    google_id: Optional[str] = Field(default=None, index=True)
    artist_name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None

    email_verified: bool = Field(default=False)
    verification_token: Optional[str] = Field(default=None, index=True)
    verification_token_expires: Optional[NaiveDatetime] = naive_datetime_field(default=None)
    reset_password_token: Optional[str] = Field(default=None, index=True)
    reset_password_expires: Optional[NaiveDatetime] = naive_datetime_field(default=None)
    last_login: Optional[NaiveDatetime] = naive_datetime_field(default=None)
