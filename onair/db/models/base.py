"""
➡️ But : Définir la structure des tables de la base (ORM).

Contient les classes héritant de SQLModel.

Représente les objets persistés. Ici on représente les propriétés communes de toutes les tables.

Chaque champ = une colonne SQL (avec type, index, clé primaire...).

🔹 Avantages :

Tu manipules des objets Python, pas du SQL brut.

Facile à migrer vers PostgreSQL ou MySQL plus tard.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    """UTC naïf : SQLite ne conserve pas le fuseau, toutes les comparaisons se font en UTC naïf."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_datetime_field(**kwargs: Any) -> Any:
    """Colonne DateTime sans fuseau (les valeurs sont en UTC naïf, cf. utcnow)."""
    return Field(sa_type=DateTime(timezone=False), **kwargs)


class BaseModelDB(SQLModel, table=False):
    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: NaiveDatetime = naive_datetime_field(default_factory=utcnow)
    updated_at: NaiveDatetime = naive_datetime_field(default_factory=utcnow)
