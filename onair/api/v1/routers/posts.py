from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Path, Query, UploadFile, status

from onair.api.v1.dependencies import get_post_service, get_upload_service, require_admin
from onair.core.errors import NotFoundError, PermissionError, StorageError, ValidationFailure
from onair.db.models.users import User
from onair.features.media.services import UploadService
from onair.features.posts.schemas import Category, PostCreateIn, PostOut, PostPage, PostStatus, PostUpdateIn
from onair.features.posts.services import PostService

router = APIRouter(
    prefix="/posts",
    tags=["posts"],
    responses={404: {"description": "Not Found"}},
)

# -----------------------------
# Public
# -----------------------------
@router.get(
    "",
    summary="Lister les posts publiés (public)",
    response_model=PostPage,
)
def list_published(
    category: Optional[Category] = Query(None),
    featured: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: PostService = Depends(get_post_service),
):
    return svc.list_published(category=category, featured=featured, page=page, limit=limit)


@router.get(
    "/slug/{slug}",
    summary="Récupérer un post publié par son slug",
    response_model=PostOut,
)
def get_by_slug(slug: str, svc: PostService = Depends(get_post_service)):
    try:
        return svc.to_out(svc.get_published_by_slug(slug))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")


@router.get(
    "/featured",
    summary="Posts mis en avant (5 au plus)",
    response_model=List[PostOut],
)
def featured(svc: PostService = Depends(get_post_service)):
    return svc.to_out_list(svc.list_featured())

# -----------------------------
# Admin
# -----------------------------
@router.get(
    "/admin/all",
    summary="Lister tous les posts, brouillons et archives compris (admin)",
    response_model=List[PostOut],
)
def list_all(
    status_: Optional[PostStatus] = Query(None, alias="status"),
    category: Optional[Category] = Query(None),
    _: User = Depends(require_admin),
    svc: PostService = Depends(get_post_service),
):
    return svc.to_out_list(svc.list_all(status=status_, category=category))


@router.get(
    "/{post_id}",
    summary="Récupérer un post (admin)",
    response_model=PostOut,
)
def get_post(
    post_id: int = Path(..., ge=1),
    _: User = Depends(require_admin),
    svc: PostService = Depends(get_post_service),
):
    try:
        return svc.to_out(svc.get_one(post_id))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")


@router.post(
    "",
    summary="Créer un post (admin)",
    status_code=status.HTTP_201_CREATED,
    response_model=PostOut,
)
def create_post(
    payload: PostCreateIn,
    user: User = Depends(require_admin),
    svc: PostService = Depends(get_post_service),
):
    try:
        return svc.to_out(svc.create(payload, user=user))
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put(
    "/{post_id}",
    summary="Mettre à jour un post (admin)",
    description="Le slug suit le titre ; `published_at` est posé à la première publication.",
    response_model=PostOut,
)
def update_post(
    payload: PostUpdateIn,
    post_id: int = Path(..., ge=1),
    _: User = Depends(require_admin),
    svc: PostService = Depends(get_post_service),
):
    try:
        return svc.to_out(svc.update(post_id, payload))
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete(
    "/{post_id}",
    summary="Supprimer un post et son image (admin)",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_post(
    post_id: int = Path(..., ge=1),
    _: User = Depends(require_admin),
    svc: PostService = Depends(get_post_service),
):
    try:
        svc.delete(post_id)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return None

# -----------------------------
# Image (upload proxifié)
# -----------------------------
@router.post(
    "/{post_id}/image",
    summary="Uploader l'image d'un post via l'API (admin)",
    response_model=PostOut,
)
def upload_image(
    post_id: int = Path(..., ge=1),
    file: UploadFile = File(...),
    user: User = Depends(require_admin),
    uploads: UploadService = Depends(get_upload_service),
    svc: PostService = Depends(get_post_service),
):
    data = file.file.read()
    try:
        loaded = uploads.store_proxied("post", post_id, "image", data=data, filename=file.filename, user=user)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.reason)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return svc.to_out(loaded.document)


@router.delete(
    "/{post_id}/image",
    summary="Supprimer l'image d'un post (admin)",
    response_model=PostOut,
)
def delete_image(
    post_id: int = Path(..., ge=1),
    user: User = Depends(require_admin),
    uploads: UploadService = Depends(get_upload_service),
    svc: PostService = Depends(get_post_service),
):
    try:
        loaded = uploads.remove("post", post_id, "image", user=user)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return svc.to_out(loaded.document)
