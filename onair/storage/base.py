"""
Contrat commun des backends de stockage objet (B2, Cloudinary, disque local).

Le backend est choisi une seule fois au démarrage (STORAGE_BACKEND) puis
injecté dans les services : aucun service n'importe un SDK de stockage.
"""

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Dict, Optional, Protocol, TypeVar, runtime_checkable

from tenacity import Retrying, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from onair.core.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PresignedUpload:
    """Ce que le client doit envoyer pour déposer l'objet lui-même."""

    url: str
    method: str = "PUT"  # PUT (B2, local) | POST (Cloudinary, formulaire signé)
    fields: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)


@runtime_checkable
class ObjectStore(Protocol):
    name: str

    def sign_upload(self, key: str, *, expires_in: int, content_type: Optional[str] = None) -> PresignedUpload:
        """URL à durée limitée permettant un upload direct de `key`."""
        ...

    def delete_object(self, key: str) -> None:
        """Supprime `key`. Idempotent : une clé absente n'est pas une erreur."""
        ...

    def upload_fileobj(self, key: str, fileobj: BinaryIO, content_type: str) -> None:
        ...

    def public_url(self, key: str) -> str:
        ...


def resource_kind(key: str, content_type: Optional[str] = None) -> str:
    """'audio' ou 'image', d'après le content-type ou l'extension de la clé."""
    if content_type:
        if content_type.startswith("image/"):
            return "image"
        if content_type.startswith("audio/"):
            return "audio"
    ext = key.rsplit(".", 1)[-1].lower() if "." in key else ""
    if ext in {"jpg", "jpeg", "png", "webp", "gif", "avif"}:
        return "image"
    return "audio"


def call_with_retries(
    fn: Callable[..., T],
    *args,
    operation: str,
    key: str,
    attempts: int = 3,
    wait_seconds: float = 0.5,
    **kwargs,
) -> T:
    """
    Exécute `fn` avec un nombre borné de tentatives (backoff exponentiel).
    Après la dernière tentative, l'erreur est convertie en StorageError.
    """
    retrying = Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=wait_seconds, max=max(wait_seconds * 8, 0)),
        retry=retry_if_not_exception_type(StorageError),
        reraise=True,
        before_sleep=lambda state: logger.warning(
            "Storage %s failed for %s (attempt %s), retrying", operation, key, state.attempt_number
        ),
    )
    try:
        for attempt in retrying:
            with attempt:
                return fn(*args, **kwargs)
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(f"{operation} failed for {key}: {exc}") from exc
    raise StorageError(f"{operation} failed for {key}")  # pragma: no cover
