from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Path, Query, UploadFile, status

from onair.api.v1.dependencies import (
    get_current_user,
    get_show_service,
    get_upload_service,
    pagination,
    require_admin,
    require_artist,
)
from onair.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionError,
    StorageError,
    ValidationFailure,
)
from onair.db.models.users import User
from onair.features.media.services import UploadService
from onair.features.shows.schemas import (
    ApproveIn,
    RejectIn,
    ShowCreateIn,
    ShowOut,
    ShowRequestIn,
    ShowUpdateIn,
)
from onair.features.shows.services import ShowService

router = APIRouter(
    prefix="/shows",
    tags=["shows"],
    responses={404: {"description": "Not Found"}},
)

# Les chemins statiques (/slug, /artist, /admin) sont déclarés avant /{show_id}.

# -----------------------------
# Public
# -----------------------------
@router.get(
    "/slug/{slug}",
    summary="Récupérer un show par son slug (public)",
    response_model=ShowOut,
)
def get_by_slug(slug: str, svc: ShowService = Depends(get_show_service)):
    try:
        return svc.to_out(svc.get_by_slug(slug))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")

# -----------------------------
# Artiste
# -----------------------------
@router.post(
    "/artist/request",
    summary="Demander la création d'un show (artiste)",
    description="Le show est créé en attente (pending / inactive) ; l'admin est prévenu par email.",
    status_code=status.HTTP_201_CREATED,
    response_model=ShowOut,
)
def request_show(
    payload: ShowRequestIn,
    user: User = Depends(get_current_user),
    svc: ShowService = Depends(get_show_service),
):
    try:
        return svc.to_out(svc.request_show(payload, user=user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get(
    "/artist/my-shows",
    summary="Lister mes shows (tous statuts)",
    response_model=List[ShowOut],
)
def my_shows(
    user: User = Depends(require_artist),
    svc: ShowService = Depends(get_show_service),
):
    return svc.to_out_list(svc.list_my_shows(user))


@router.get(
    "/artist/approved",
    summary="Lister mes shows approuvés et actifs",
    description="Shows pour lesquels l'artiste peut créer des épisodes.",
    response_model=List[ShowOut],
)
def my_approved_shows(
    user: User = Depends(require_artist),
    svc: ShowService = Depends(get_show_service),
):
    return svc.to_out_list(svc.list_my_approved(user))

# -----------------------------
# Admin : demandes et approbation
# -----------------------------
@router.get(
    "/admin/requests",
    summary="Lister les demandes en attente",
    response_model=List[ShowOut],
)
def pending_requests(
    _: User = Depends(require_admin),
    svc: ShowService = Depends(get_show_service),
):
    return svc.to_out_list(svc.list_pending_requests())


@router.put(
    "/admin/{show_id}/approve",
    summary="Approuver une demande de show",
    response_model=ShowOut,
    responses={409: {"description": "La demande n'est plus en attente"}},
)
def approve(
    show_id: int = Path(..., ge=1),
    payload: Optional[ApproveIn] = None,
    _: User = Depends(require_admin),
    svc: ShowService = Depends(get_show_service),
):
    try:
        show = svc.approve(show_id, admin_notes=payload.admin_notes if payload else None)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return svc.to_out(show)


@router.put(
    "/admin/{show_id}/reject",
    summary="Rejeter une demande de show",
    description="`adminNotes` est obligatoire : il est transmis à l'artiste.",
    response_model=ShowOut,
    responses={
        400: {"description": "Notes manquantes"},
        409: {"description": "La demande n'est plus en attente"},
    },
)
def reject(
    payload: RejectIn,
    show_id: int = Path(..., ge=1),
    _: User = Depends(require_admin),
    svc: ShowService = Depends(get_show_service),
):
    try:
        show = svc.reject(show_id, admin_notes=payload.admin_notes)
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return svc.to_out(show)

# -----------------------------
# Liste / détail (admin : tout ; artiste : ses shows)
# -----------------------------
@router.get(
    "",
    summary="Lister les shows",
    response_model=List[ShowOut],
)
def list_shows(
    status_: Optional[str] = Query(None, alias="status"),
    featured: Optional[bool] = Query(None),
    genre: Optional[str] = Query(None),
    page=Depends(pagination),
    user: User = Depends(get_current_user),
    svc: ShowService = Depends(get_show_service),
):
    shows = svc.list_for(user, status=status_, featured=featured, genre=genre, **page)
    return svc.to_out_list(shows)


@router.get(
    "/{show_id}",
    summary="Récupérer un show (admin ou propriétaire)",
    response_model=ShowOut,
)
def get_show(
    show_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    svc: ShowService = Depends(get_show_service),
):
    try:
        return svc.to_out(svc.get_one(show_id, user=user))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")

# -----------------------------
# CRUD admin
# -----------------------------
@router.post(
    "",
    summary="Créer un show (admin)",
    status_code=status.HTTP_201_CREATED,
    response_model=ShowOut,
    responses={409: {"description": "Slug déjà utilisé"}},
)
def create_show(
    payload: ShowCreateIn,
    user: User = Depends(require_admin),
    svc: ShowService = Depends(get_show_service),
):
    try:
        return svc.to_out(svc.create(payload, user=user))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put(
    "/{show_id}",
    summary="Mettre à jour un show (admin)",
    response_model=ShowOut,
)
def update_show(
    payload: ShowUpdateIn,
    show_id: int = Path(..., ge=1),
    _: User = Depends(require_admin),
    svc: ShowService = Depends(get_show_service),
):
    try:
        return svc.to_out(svc.update(show_id, payload))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete(
    "/{show_id}",
    summary="Supprimer un show, ses épisodes et leurs fichiers (admin)",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_show(
    show_id: int = Path(..., ge=1),
    _: User = Depends(require_admin),
    svc: ShowService = Depends(get_show_service),
):
    try:
        svc.delete(show_id)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")
    return None

# -----------------------------
# Audio promotionnel (upload proxifié)
# -----------------------------
@router.post(
    "/{show_id}/audio",
    summary="Uploader l'audio promotionnel via l'API",
    description="Ancien chemin : préférer /upload/presign/show/{id} puis /upload/confirm/show/{id}.",
    response_model=ShowOut,
)
def upload_show_audio(
    show_id: int = Path(..., ge=1),
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
    svc: ShowService = Depends(get_show_service),
):
    data = file.file.read()
    try:
        loaded = uploads.store_proxied("show", show_id, "audio", data=data, filename=file.filename, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Show not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return svc.to_out(loaded.document)


@router.delete(
    "/{show_id}/audio",
    summary="Supprimer l'audio promotionnel",
    response_model=ShowOut,
)
def delete_show_audio(
    show_id: int = Path(..., ge=1),
    user: User = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
    svc: ShowService = Depends(get_show_service),
):
    try:
        loaded = uploads.remove("show", show_id, "audio", user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return svc.to_out(loaded.document)
