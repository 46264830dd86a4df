"""
➡️ But : Centraliser les dépendances réutilisables des routes.

Exemples :

get_show_service() : crée un ShowService à partir d'une session DB.

get_object_store() : le backend de stockage construit au démarrage (app.state).

get_current_user() / require_admin() : résolution du bearer, partagée par toutes les routes protégées.

🔹 Avantages :

Routes plus propres (pas de code dupliqué).

Facile à remplacer dans les tests (app.dependency_overrides, app.state).
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from onair.core.config import jwt_settings, settings
from onair.db.models.users import User
from onair.db.repositories.assets import AssetRepository, OrphanedObjectRepository
from onair.db.repositories.episodes import EpisodeRepository
from onair.db.repositories.posts import PostRepository
from onair.db.repositories.refresh_tokens import RefreshTokenRepository
from onair.db.repositories.shows import ShowRepository
from onair.db.repositories.users import UserRepository
from onair.db.session import get_session
from onair.features.authentication.services import AuthService
from onair.features.episodes.services import EpisodeService
from onair.features.media.services import AssetService, UploadService
from onair.features.mixcloud.client import MixcloudClient
from onair.features.notifications.services import NotificationSender
from onair.features.posts.services import PostService
from onair.features.shows.services import ShowService
from onair.storage.base import ObjectStore


def pagination(
    page: int = Query(1, ge=1, description="Numéro de page", examples=[1]),
    size: int = Query(20, ge=1, le=100, description="Taille de page", examples=[20]),
):
    offset = (page - 1) * size
    return {"offset": offset, "limit": size}


# -----------------------------
# Composants construits au démarrage (app.state)
# -----------------------------
def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def get_notifier(request: Request) -> Optional[NotificationSender]:
    return getattr(request.app.state, "notifier", None)


def get_mixcloud_client(request: Request) -> Optional[MixcloudClient]:
    return getattr(request.app.state, "mixcloud", None)


# -----------------------------
# Repositories
# -----------------------------
def get_user_repository(session: Session = Depends(get_session)) -> UserRepository:
    return UserRepository(session)

def get_show_repository(session: Session = Depends(get_session)) -> ShowRepository:
    return ShowRepository(session)

def get_episode_repository(session: Session = Depends(get_session)) -> EpisodeRepository:
    return EpisodeRepository(session)

def get_post_repository(session: Session = Depends(get_session)) -> PostRepository:
    return PostRepository(session)


# -----------------------------
# Auth
# -----------------------------
def get_auth_service(
    session: Session = Depends(get_session),
    notifier: Optional[NotificationSender] = Depends(get_notifier),
) -> AuthService:
    return AuthService(
        user_repo=UserRepository(session),
        refresh_repo=RefreshTokenRepository(session),
        jwt_settings=jwt_settings,
        notifier=notifier,
        verification_ttl=timedelta(hours=settings.VERIFICATION_TOKEN_HOURS),
        reset_ttl=timedelta(minutes=settings.RESET_TOKEN_MINUTES),
    )


# -----------------------------
# Media services
# -----------------------------
def get_asset_service(
    session: Session = Depends(get_session),
    store: ObjectStore = Depends(get_object_store),
) -> AssetService:
    return AssetService(
        asset_repo=AssetRepository(session),
        orphan_repo=OrphanedObjectRepository(session),
        store=store,
    )

def get_upload_service(
    show_repo: ShowRepository = Depends(get_show_repository),
    episode_repo: EpisodeRepository = Depends(get_episode_repository),
    post_repo: PostRepository = Depends(get_post_repository),
    asset_svc: AssetService = Depends(get_asset_service),
    store: ObjectStore = Depends(get_object_store),
) -> UploadService:
    return UploadService(
        show_repo=show_repo,
        episode_repo=episode_repo,
        post_repo=post_repo,
        asset_svc=asset_svc,
        store=store,
        presign_ttl=settings.PRESIGN_TTL_SECONDS,
        max_audio_mb=settings.MAX_AUDIO_MB,
        max_image_mb=settings.MAX_IMAGE_MB,
        min_audio_bitrate_kbps=settings.MIN_AUDIO_BITRATE_KBPS or None,
    )


# -----------------------------
# Shows / Episodes / Posts
# -----------------------------
def get_show_service(
    show_repo: ShowRepository = Depends(get_show_repository),
    episode_repo: EpisodeRepository = Depends(get_episode_repository),
    user_repo: UserRepository = Depends(get_user_repository),
    asset_svc: AssetService = Depends(get_asset_service),
    notifier: Optional[NotificationSender] = Depends(get_notifier),
) -> ShowService:
    return ShowService(
        repo=show_repo,
        episode_repo=episode_repo,
        user_repo=user_repo,
        asset_svc=asset_svc,
        notifier=notifier,
    )

def get_episode_service(
    episode_repo: EpisodeRepository = Depends(get_episode_repository),
    show_repo: ShowRepository = Depends(get_show_repository),
    asset_svc: AssetService = Depends(get_asset_service),
    mixcloud: Optional[MixcloudClient] = Depends(get_mixcloud_client),
) -> EpisodeService:
    return EpisodeService(
        repo=episode_repo,
        show_repo=show_repo,
        asset_svc=asset_svc,
        mixcloud=mixcloud,
    )

def get_post_service(
    post_repo: PostRepository = Depends(get_post_repository),
    asset_svc: AssetService = Depends(get_asset_service),
) -> PostService:
    return PostService(repo=post_repo, asset_svc=asset_svc)


# -----------------------------
# Authentication data
# -----------------------------
bearer_scheme = HTTPBearer(auto_error=True)

def get_access_token_from_bearer(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme),
) -> str:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth scheme")
    return credentials.credentials


def get_current_user(
    access_token: str = Depends(get_access_token_from_bearer),
    auth_svc: AuthService = Depends(get_auth_service),
) -> User:
    return auth_svc.get_current_user(access_token=access_token)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin only")
    return user


def require_artist(user: User = Depends(get_current_user)) -> User:
    if user.role != "artist":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Artist only")
    return user


@dataclass
class ClientContext:
    ip: Optional[str]
    user_agent: Optional[str]

def get_client_ip_and_ua(
    x_forwarded_for: Optional[str] = Header(default=None, alias="X-Forwarded-For"),
    x_real_ip: Optional[str] = Header(default=None, alias="X-Real-IP"),
    user_agent: Optional[str] = Header(default=None, alias="User-Agent"),
) -> ClientContext:
    """
    Récupère l'IP depuis X-Forwarded-For > X-Real-IP (si derrière un proxy),
    et le User-Agent (utile pour audit des refresh tokens).
    """
    ip = None
    if x_forwarded_for:
        ip = x_forwarded_for.split(",")[0].strip()
    elif x_real_ip:
        ip = x_real_ip
    return ClientContext(ip=ip, user_agent=user_agent)
