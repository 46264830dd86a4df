"""
Exceptions métier levées par les services.

Les routers les traduisent en HTTPException (try/except au plus près de la route) :
NotFoundError -> 404, PermissionError -> 403, ValidationFailure -> 400,
ConflictError -> 409, StorageError et MixcloudError -> 502. NotificationError n'est jamais
remontée au client : l'appelant la logue et continue.
"""


class PermissionError(Exception):
    """Refus d'accès ; `reason` est renvoyé tel quel au client."""

    def __init__(self, reason: str = "Forbidden"):
        super().__init__(reason)
        self.reason = reason


class NotFoundError(LookupError):
    pass


class ValidationFailure(ValueError):
    pass


class ConflictError(Exception):
    pass


class StorageError(Exception):
    """Échec d'un appel au stockage objet (signature, upload, suppression)."""


class NotificationError(Exception):
    """Échec d'envoi d'un email."""


class MixcloudError(Exception):
    """Mixcloud a refusé ou n'a pas pu recevoir la publication."""
