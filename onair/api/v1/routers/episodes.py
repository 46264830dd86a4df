from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Path, Query, UploadFile, status
from fastapi.responses import RedirectResponse

from onair.api.v1.dependencies import (
    get_current_user,
    get_episode_service,
    get_upload_service,
    pagination,
    require_admin,
)
from onair.core.errors import (
    MixcloudError,
    NotFoundError,
    PermissionError,
    StorageError,
    ValidationFailure,
)
from onair.db.models.users import User
from onair.features.episodes.schemas import (
    EpisodeCreateIn,
    EpisodeOut,
    EpisodeUpdateIn,
    MixcloudStatusOut,
)
from onair.features.episodes.services import EpisodeService
from onair.features.media.services import UploadService

router = APIRouter(
    prefix="/episodes",
    tags=["episodes"],
    responses={404: {"description": "Not Found"}},
)

# -------- Helpers --------

def _store(
    uploads: UploadService,
    svc: EpisodeService,
    *,
    episode_id: int,
    slot: str,
    file: UploadFile,
    user: User,
) -> EpisodeOut:
    data = file.file.read()
    try:
        loaded = uploads.store_proxied("episode", episode_id, slot, data=data, filename=file.filename, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Episode not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return svc.to_out(loaded.document)


def _remove(uploads: UploadService, svc: EpisodeService, *, episode_id: int, slot: str, user: User) -> EpisodeOut:
    try:
        loaded = uploads.remove("episode", episode_id, slot, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return svc.to_out(loaded.document)

# -----------------------------
# Public
# -----------------------------
@router.get(
    "/public/show/{slug}",
    summary="Lister les épisodes publiés d'un show (public)",
    response_model=List[EpisodeOut],
)
def list_public_for_show(slug: str, svc: EpisodeService = Depends(get_episode_service)):
    try:
        return svc.to_out_list(svc.list_public_for_show(slug))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")


@router.get(
    "/public/{episode_id}/stream",
    summary="Écouter un épisode publié (redirection vers l'audio)",
    description="Incrémente le compteur d'écoutes puis redirige (307) vers l'URL du fichier.",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    response_class=RedirectResponse,
)
def public_stream(episode_id: int = Path(..., ge=1), svc: EpisodeService = Depends(get_episode_service)):
    try:
        url = svc.public_stream_url(episode_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

# -----------------------------
# Lecture (admin : tout ; artiste : épisodes de ses shows)
# -----------------------------
@router.get(
    "",
    summary="Lister les épisodes",
    response_model=List[EpisodeOut],
)
def list_episodes(
    show_id: Optional[int] = Query(None, ge=1),
    status_: Optional[str] = Query(None, alias="status"),
    page=Depends(pagination),
    user: User = Depends(get_current_user),
    svc: EpisodeService = Depends(get_episode_service),
):
    return svc.to_out_list(svc.list_for(user, show_id=show_id, status=status_, **page))


@router.get(
    "/{episode_id}",
    summary="Récupérer un épisode (admin ou propriétaire du show)",
    response_model=EpisodeOut,
)
def get_episode(
    episode_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    svc: EpisodeService = Depends(get_episode_service),
):
    try:
        return svc.to_out(svc.get_one(episode_id, user=user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Episode not found")


@router.get(
    "/{episode_id}/stream",
    summary="Écouter un épisode (admin ou propriétaire, tous statuts)",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    response_class=RedirectResponse,
)
def stream(
    episode_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    svc: EpisodeService = Depends(get_episode_service),
):
    try:
        url = svc.stream_url(episode_id, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

# -----------------------------
# Écriture
# -----------------------------
@router.post(
    "",
    summary="Créer un épisode",
    description="Un artiste ne peut créer que pour un show à lui, approuvé et actif.",
    status_code=status.HTTP_201_CREATED,
    response_model=EpisodeOut,
    responses={403: {"description": "Création refusée (la raison est renvoyée)"}},
)
def create_episode(
    payload: EpisodeCreateIn,
    user: User = Depends(get_current_user),
    svc: EpisodeService = Depends(get_episode_service),
):
    try:
        return svc.to_out(svc.create(payload, user=user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")


@router.put(
    "/{episode_id}",
    summary="Mettre à jour un épisode",
    response_model=EpisodeOut,
)
def update_episode(
    payload: EpisodeUpdateIn,
    episode_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    svc: EpisodeService = Depends(get_episode_service),
):
    try:
        return svc.to_out(svc.update(episode_id, payload, user=user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Episode not found")


@router.delete(
    "/{episode_id}",
    summary="Supprimer un épisode et ses fichiers",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_episode(
    episode_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    svc: EpisodeService = Depends(get_episode_service),
):
    try:
        svc.delete(episode_id, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Episode not found")
    return None

# -----------------------------
# Fichiers (upload proxifié, ancien chemin)
# -----------------------------
@router.post(
    "/{episode_id}/upload",
    summary="Uploader l'audio via l'API",
    description="Préférer /upload/presign/episode/{id} puis /upload/confirm/episode/{id}.",
    response_model=EpisodeOut,
)
def upload_audio(
    episode_id: int = Path(..., ge=1),
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
    svc: EpisodeService = Depends(get_episode_service),
):
    return _store(uploads, svc, episode_id=episode_id, slot="audio", file=file, user=user)


@router.post(
    "/{episode_id}/upload-image",
    summary="Uploader la pochette via l'API",
    response_model=EpisodeOut,
)
def upload_image(
    episode_id: int = Path(..., ge=1),
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
    svc: EpisodeService = Depends(get_episode_service),
):
    return _store(uploads, svc, episode_id=episode_id, slot="image", file=file, user=user)


@router.delete(
    "/{episode_id}/audio",
    summary="Supprimer l'audio",
    response_model=EpisodeOut,
)
def delete_audio(
    episode_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
    svc: EpisodeService = Depends(get_episode_service),
):
    return _remove(uploads, svc, episode_id=episode_id, slot="audio", user=user)


@router.delete(
    "/{episode_id}/image",
    summary="Supprimer la pochette",
    response_model=EpisodeOut,
)
def delete_image(
    episode_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
    svc: EpisodeService = Depends(get_episode_service),
):
    return _remove(uploads, svc, episode_id=episode_id, slot="image", user=user)

# -----------------------------
# Mixcloud
# -----------------------------
@router.post(
    "/{episode_id}/publish-mixcloud",
    summary="Publier un épisode archivé sur Mixcloud (admin)",
    response_model=EpisodeOut,
    responses={
        400: {"description": "Épisode non archivé, déjà publié ou sans audio"},
        502: {"description": "Mixcloud a refusé l'upload"},
    },
)
def publish_mixcloud(
    episode_id: int = Path(..., ge=1),
    _: User = Depends(require_admin),
    svc: EpisodeService = Depends(get_episode_service),
):
    try:
        return svc.to_out(svc.publish_to_mixcloud(episode_id))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Episode not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except MixcloudError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get(
    "/{episode_id}/mixcloud-status",
    summary="Statut de publication Mixcloud",
    response_model=MixcloudStatusOut,
)
def mixcloud_status(
    episode_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    svc: EpisodeService = Depends(get_episode_service),
):
    try:
        return svc.mixcloud_status(episode_id, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Episode not found")
