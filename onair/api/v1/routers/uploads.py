"""
➡️ But : Handshake d'upload direct vers le stockage objet.

1. POST /upload/presign/{collection}/{id} : le serveur vérifie les droits et signe une URL.
2. Le client envoie les octets directement au stockage (jamais à travers l'API).
3. POST /upload/confirm/{collection}/{id} : le serveur enregistre l'asset sur le document.

PUT /upload/local/{key} joue le rôle du stockage quand STORAGE_BACKEND=local :
l'autorisation est le jeton signé de l'URL, pas le bearer.

🔹 Avantages :

Les gros fichiers audio ne transitent plus par le serveur applicatif.

Les droits restent vérifiés deux fois (presign et confirm).
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status

from onair.api.v1.dependencies import (
    get_current_user,
    get_episode_service,
    get_object_store,
    get_post_service,
    get_show_service,
    get_upload_service,
)
from onair.core.errors import PermissionError, StorageError, ValidationFailure
from onair.db.models.users import User
from onair.features.episodes.services import EpisodeService
from onair.features.media.schemas import AssetOut, Collection, ConfirmIn, PresignIn, PresignOut
from onair.features.media.services import UploadService, slot_field
from onair.features.posts.services import PostService
from onair.features.shows.services import ShowService
from onair.features.uploads.schemas import ConfirmOut, LocalUploadOut
from onair.security.tokens import upload_token_matches
from onair.storage.base import ObjectStore
from onair.storage.local import LocalObjectStore

router = APIRouter(
    prefix="/upload",
    tags=["uploads"],
    responses={404: {"description": "Not Found"}},
)


@router.post(
    "/presign/{collection}/{doc_id}",
    summary="Obtenir une URL d'upload direct signée",
    description="Aucune validation de contenu ici. L'URL expire après `expiresIn` secondes.",
    response_model=PresignOut,
    responses={
        403: {"description": "Document d'un autre utilisateur"},
        400: {"description": "Nom de fichier absent ou slot inconnu"},
        500: {"description": "Le stockage n'a pas pu signer l'URL"},
    },
)
def presign(
    payload: PresignIn,
    collection: Collection,
    doc_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
):
    try:
        return uploads.presign(collection, doc_id, payload, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Could not sign upload: {e}")


@router.post(
    "/confirm/{collection}/{doc_id}",
    summary="Confirmer un upload direct terminé",
    description=(
        "Enregistre le fichier sur le document. Si le slot contenait un autre fichier, "
        "l'ancien objet est supprimé du stockage (best-effort)."
    ),
    response_model=ConfirmOut,
    response_model_exclude_none=True,
)
def confirm(
    payload: ConfirmIn,
    collection: Collection,
    doc_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
    show_svc: ShowService = Depends(get_show_service),
    episode_svc: EpisodeService = Depends(get_episode_service),
    post_svc: PostService = Depends(get_post_service),
):
    try:
        loaded = uploads.confirm(collection, doc_id, payload, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    document = loaded.document
    asset_id = getattr(document, slot_field(payload.slot))
    asset = uploads.asset_svc.asset_repo.get(asset_id) if asset_id else None
    serializers = {"show": show_svc, "episode": episode_svc, "post": post_svc}
    return ConfirmOut(
        message=f"{payload.slot.capitalize()} uploaded successfully",
        asset=AssetOut.from_model(asset),
        **{collection: serializers[collection].to_out(document)},
    )


@router.put(
    "/local/{key:path}",
    summary="Réception d'un upload direct (stockage disque local)",
    response_model=LocalUploadOut,
    responses={403: {"description": "Jeton absent, expiré ou émis pour une autre clé"}},
)
async def local_put(
    key: str,
    request: Request,
    token: str = Query(...),
    store: ObjectStore = Depends(get_object_store),
):
    if not isinstance(store, LocalObjectStore):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Local storage is not enabled")
    if not upload_token_matches(token, key, store.jwt):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired upload token")
    try:
        size = await store.write_stream(key, request.stream())
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return LocalUploadOut(key=key, size=size)
