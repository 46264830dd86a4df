from typing import Optional

from pydantic import NaiveDatetime
from sqlmodel import Field

from .base import BaseModelDB, naive_datetime_field, utcnow


class Asset(BaseModelDB, table=True):
    """Fichier audio ou image stocké dans le stockage objet, référencé par les documents."""

    object_key: str = Field(index=True, unique=True, description="Clé <collection>/<ownerId>_<timestamp>.<ext>")
    url: str = Field(description="URL publique de l'objet")
    filename: Optional[str] = Field(default=None, description="Nom de fichier d'origine")
    bytes: Optional[int] = Field(default=None, description="Taille en octets")
    duration: Optional[float] = Field(default=None, description="Durée en secondes (audio)")
    bitrate: Optional[int] = Field(default=None, description="Débit en kbps (audio)")
    mime_type: Optional[str] = None
    uploaded_at: NaiveDatetime = naive_datetime_field(default_factory=utcnow)


class OrphanedObject(BaseModelDB, table=True):
    """Objet de stockage dont la suppression a échoué ; repris par scripts/purge_orphans.py."""

    object_key: str = Field(index=True)
    reason: Optional[str] = None
    resolved_at: Optional[NaiveDatetime] = naive_datetime_field(default=None)
