"""
➡️ But : Personnaliser la documentation Swagger/OpenAPI.

custom_openapi(app) complète le schéma généré par FastAPI avec les conventions de l'API.
"""

from fastapi.openapi.utils import get_openapi


def custom_openapi(app):
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=(
            "API de la web radio : shows, épisodes, posts et fichiers audio / image.\n\n"
            "### Conventions\n"
            "- Toutes les heures sont en UTC.\n"
            "- Pagination : query params `page` & `size` (`page` & `limit` pour /posts).\n"
            "- Upload direct : `presign` → PUT/POST vers le stockage → `confirm`.\n"
            "- Durées : secondes pour les fichiers, minutes pour les épisodes.\n"
        ),
        routes=app.routes,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema
