"""
➡️ But : Définir les formats de sortie des comptes (couche validation).

Sépare les modèles "de stockage" (ORM) de ceux "de transfert" (I/O API) :
le hash du mot de passe et les tokens à usage unique ne sortent jamais.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel


class UserOut(SQLModel):
    id: int
    email: str
    name: str
    role: str
    auth_provider: str
    artist_name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    email_verified: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
