"""
➡️ But : assembler toutes les pièces du puzzle.

create_app() crée l'instance FastAPI et configure :

les logs (Loguru),

CORS (autorisations de qui peut appeler ces API),

les composants construits une seule fois : stockage objet, envoi d'emails, client Mixcloud (app.state),

les routers sous /api/v1, /api/health et /media (stockage disque local),

le schéma OpenAPI personnalisé.

Initialise la base au démarrage (@app.on_event("startup")).

🔹 Avantages :

Centralise la configuration du serveur HTTP.

Les tests passent leurs propres composants : create_app(object_store=..., notifier=...).

Point unique d'exécution : uvicorn onair.main:app --reload.
"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from onair.api.v1.routers import authentication, episodes, posts, shows, uploads
from onair.core.config import settings
from onair.core.logger import setup_logging
from onair.core.openapi import custom_openapi
from onair.db.session import init_db
from onair.features.mixcloud.client import MixcloudClient
from onair.features.notifications.services import NotificationSender, build_notification_sender
from onair.storage.base import ObjectStore
from onair.storage.factory import build_object_store
from onair.storage.local import LocalObjectStore

logger = logging.getLogger(__name__)


def create_app(
    *,
    object_store: Optional[ObjectStore] = None,
    notifier: Optional[NotificationSender] = None,
    mixcloud_client: Optional[MixcloudClient] = None,
) -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        version="0.1.0",
        openapi_tags=[
            {"name": "auth", "description": "Inscription, connexion, mots de passe"},
            {"name": "shows", "description": "Shows, demandes des artistes et approbation"},
            {"name": "episodes", "description": "Épisodes, écoute et publication Mixcloud"},
            {"name": "posts", "description": "Actualités du site"},
            {"name": "uploads", "description": "Upload direct vers le stockage (presign / confirm)"},
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS, allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )

    # Composants partagés, injectés par onair.api.v1.dependencies
    store = object_store or build_object_store(settings)
    app.state.object_store = store
    app.state.notifier = notifier or build_notification_sender(settings)
    if mixcloud_client is None and settings.MIXCLOUD_ACCESS_TOKEN:
        mixcloud_client = MixcloudClient(
            access_token=settings.MIXCLOUD_ACCESS_TOKEN,
            username=settings.MIXCLOUD_USERNAME,
        )
    app.state.mixcloud = mixcloud_client

    # Routers
    app.include_router(authentication.router, prefix="/api/v1")
    app.include_router(shows.router, prefix="/api/v1")
    app.include_router(episodes.router, prefix="/api/v1")
    app.include_router(posts.router, prefix="/api/v1")
    app.include_router(uploads.router, prefix="/api/v1")

    @app.get("/api/health", tags=["health"], summary="État du service")
    def health():
        return {"status": "ok", "storage": store.name}

    if isinstance(store, LocalObjectStore):
        app.mount("/media", StaticFiles(directory=str(store.root)), name="media")

    app.openapi = lambda: custom_openapi(app)

    @app.on_event("startup")
    def on_startup():
        init_db()
        logger.info("%s started (env=%s, storage=%s)", settings.APP_NAME, settings.ENV, store.name)

    return app


app = create_app()

if __name__ == "__main__":
    # Délai keep-alive entre deux requêtes seulement : uvicorn n'a pas de timeout par requête,
    # la durée max d'un upload proxifié se règle sur le reverse proxy.
    uvicorn.run(
        app,
        host="127.0.0.1",
        port=8000,
        timeout_keep_alive=settings.UPLOAD_TIMEOUT_SECONDS,
    )
