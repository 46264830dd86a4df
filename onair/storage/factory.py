import logging

from onair.core.config import Settings, jwt_settings as default_jwt_settings
from onair.security.tokens import JWTSettings
from onair.storage.base import ObjectStore

logger = logging.getLogger(__name__)


def build_object_store(settings: Settings, *, jwt: JWTSettings = default_jwt_settings) -> ObjectStore:
    """Instancie le backend choisi par STORAGE_BACKEND (une seule fois, au démarrage)."""
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "b2":
        from onair.storage.b2 import B2ObjectStore, make_b2_client

        client = make_b2_client(
            endpoint_url=settings.B2_ENDPOINT,
            region=settings.B2_REGION,
            key_id=settings.B2_KEY_ID,
            application_key=settings.B2_APPLICATION_KEY,
        )
        store = B2ObjectStore(
            client=client,
            bucket=settings.B2_BUCKET,
            public_base_url=settings.B2_PUBLIC_BASE_URL,
            retry_attempts=settings.STORAGE_RETRY_ATTEMPTS,
        )
    elif backend == "cloudinary":
        from onair.storage.cloudinary import CloudinaryObjectStore

        store = CloudinaryObjectStore(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            folder=settings.CLOUDINARY_FOLDER,
            retry_attempts=settings.STORAGE_RETRY_ATTEMPTS,
        )
    elif backend == "local":
        from onair.storage.local import LocalObjectStore

        store = LocalObjectStore(
            root=settings.MEDIA_ROOT,
            public_base_url=settings.PUBLIC_BASE_URL,
            jwt=jwt,
        )
    else:
        raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND!r}")

    logger.info("Object store: %s", store.name)
    return store
