import logging
from typing import List, Optional, Sequence

from onair.core.errors import (
    NotFoundError,
    PermissionError,
    MixcloudError,
    ValidationFailure,
)
from onair.db.models.base import utcnow
from onair.db.models.episodes import Episode
from onair.db.models.shows import Show
from onair.db.models.users import User
from onair.db.repositories.episodes import EpisodeRepository
from onair.db.repositories.shows import ShowRepository
from onair.features.episodes.schemas import (
    EpisodeCreateIn,
    EpisodeOut,
    EpisodeUpdateIn,
    MixcloudStatusOut,
)
from onair.features.media.services import AssetService
from onair.features.mixcloud.client import MixcloudClient, MixcloudResult, embed_html, embed_url
from onair.features.permissions import can_manage, check_can_create_episode

logger = logging.getLogger(__name__)


class EpisodeService:
    """
    Logique métier des épisodes.
    Propriétaire d'un épisode = créateur de son show.
    """

    def __init__(
        self,
        *,
        repo: EpisodeRepository,
        show_repo: ShowRepository,
        asset_svc: AssetService,
        mixcloud: Optional[MixcloudClient] = None,
    ):
        self.repo = repo
        self.show_repo = show_repo
        self.asset_svc = asset_svc
        self.mixcloud = mixcloud

    # -------- helpers --------

    def to_out(self, episode: Episode) -> EpisodeOut:
        return EpisodeOut.build(episode, self.asset_svc.for_documents([episode]))

    def to_out_list(self, episodes: Sequence[Episode]) -> List[EpisodeOut]:
        assets = self.asset_svc.for_documents(episodes)
        return [EpisodeOut.build(e, assets) for e in episodes]

    def _get(self, episode_id: int) -> Episode:
        episode = self.repo.get(episode_id)
        if not episode:
            raise NotFoundError("Episode not found")
        return episode

    def _owner_id(self, episode: Episode) -> Optional[int]:
        show = self.show_repo.get(episode.show_id)
        return show.created_by if show else None

    def _get_managed(self, episode_id: int, user: User) -> Episode:
        episode = self._get(episode_id)
        if not can_manage(user, self._owner_id(episode)):
            raise PermissionError("Not allowed to manage this episode")
        return episode

    def _audio_url(self, episode: Episode) -> Optional[str]:
        if not episode.audio_asset_id:
            return None
        asset = self.asset_svc.asset_repo.get(episode.audio_asset_id)
        return asset.url if asset else None

    # -------- Public --------

    def list_public_for_show(self, slug: str) -> Sequence[Episode]:
        show = self.show_repo.get_by_slug(slug)
        if not show:
            raise NotFoundError("Show not found")
        return self.repo.list_for_show(show.id, status="published", limit=1000)

    def public_stream_url(self, episode_id: int) -> str:
        """Incrémente le compteur d'écoutes et renvoie l'URL audio."""
        episode = self.repo.get(episode_id)
        if not episode or episode.status != "published":
            raise NotFoundError("Episode not found")
        url = self._audio_url(episode)
        if not url:
            raise NotFoundError("Audio file not available")
        self.repo.update(episode, plays=episode.plays + 1)
        return url

    # -------- Reads --------

    def list_for(
        self,
        user: User,
        *,
        show_id: Optional[int] = None,
        status: Optional[str] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[Episode]:
        return self.repo.search(
            owner_id=None if user.role == "admin" else user.id,
            show_id=show_id,
            status=status,
            offset=offset,
            limit=limit,
        )

    def get_one(self, episode_id: int, *, user: User) -> Episode:
        return self._get_managed(episode_id, user)

    def stream_url(self, episode_id: int, *, user: User) -> str:
        episode = self._get_managed(episode_id, user)
        url = self._audio_url(episode)
        if not url:
            raise NotFoundError("Audio file not available")
        return url

    # -------- Writes --------

    def create(self, payload: EpisodeCreateIn, *, user: User) -> Episode:
        show = self.show_repo.get(payload.show_id)
        if not show:
            raise NotFoundError("Show not found")

        allowed, reason = check_can_create_episode(user, show)
        if not allowed:
            raise PermissionError(reason)

        episode = self.repo.create(
            commit=False,
            **payload.model_dump(),
            created_by=user.id,
            updated_by=user.id,
        )
        self.show_repo.update(show, commit=False, total_episodes=show.total_episodes + 1)
        self.repo.session.commit()
        self.repo.session.refresh(episode)
        logger.info("Episode #%s created for show #%s", episode.id, show.id)
        return episode

    def update(self, episode_id: int, payload: EpisodeUpdateIn, *, user: User) -> Episode:
        episode = self._get_managed(episode_id, user)
        changes = payload.model_dump(exclude_unset=True)
        for field in ("title", "air_date", "status", "featured"):
            if field in changes and changes[field] is None:
                changes.pop(field)
        return self.repo.update(episode, updated_by=user.id, **changes)

    def delete(self, episode_id: int, *, user: User) -> None:
        episode = self._get_managed(episode_id, user)
        show = self.show_repo.get(episode.show_id)

        self.asset_svc.remove_all(episode)
        self.repo.delete(episode, commit=False)
        if show is not None:
            self.show_repo.update(show, commit=False, total_episodes=max(0, show.total_episodes - 1))
        self.repo.session.commit()
        logger.info("Episode #%s deleted", episode_id)

    # -------- Mixcloud --------

    def publish_to_mixcloud(self, episode_id: int) -> Episode:
        """
        pending|failed -> uploading -> uploaded|failed.
        Lève MixcloudError (502) si Mixcloud refuse ; l'erreur est conservée sur l'épisode.
        """
        episode = self._get(episode_id)
        if episode.status != "archived":
            raise ValidationFailure("Only archived episodes can be published to Mixcloud")
        if episode.mixcloud_status == "uploaded":
            raise ValidationFailure("Episode already published to Mixcloud")
        audio_url = self._audio_url(episode)
        if not audio_url:
            raise ValidationFailure("Episode has no audio file")
        if self.mixcloud is None:
            raise MixcloudError("Mixcloud is not configured")

        show: Show = self.show_repo.get(episode.show_id)
        assets = self.asset_svc.for_documents([episode, show])
        audio = assets.get(episode.audio_asset_id)
        image = assets.get(episode.image_asset_id) or assets.get(show.image_asset_id)

        episode = self.repo.update(
            episode,
            mixcloud_status="uploading",
            mixcloud_key=None,
            mixcloud_uploaded_at=None,
            mixcloud_error=None,
        )

        try:
            result: MixcloudResult = self.mixcloud.upload(
                title=episode.title,
                description=episode.description,
                tags=list(show.tags or []),
                audio_url=audio_url,
                audio_filename=audio.filename if audio else None,
                image_url=image.url if image else None,
            )
        except Exception as exc:
            logger.exception("Mixcloud upload of episode #%s crashed", episode.id)
            result = MixcloudResult(success=False, error=f"Unexpected Mixcloud error: {exc}")

        if not result.success:
            self.repo.update(episode, mixcloud_status="failed", mixcloud_error=result.error)
            logger.error("Mixcloud upload of episode #%s failed: %s", episode.id, result.error)
            raise MixcloudError(result.error or "Mixcloud upload failed")

        logger.info("Episode #%s published to Mixcloud: %s", episode.id, result.url)
        return self.repo.update(
            episode,
            mixcloud_status="uploaded",
            mixcloud_key=result.key,
            mixcloud_uploaded_at=utcnow(),
            mixcloud_error=None,
            mixcloud_url=result.url,
        )

    def mixcloud_status(self, episode_id: int, *, user: User) -> MixcloudStatusOut:
        """Si l'épisode est publié, vérifie aussi que la cloudcast existe encore côté Mixcloud."""
        episode = self._get_managed(episode_id, user)
        out = MixcloudStatusOut(
            status=episode.mixcloud_status,
            url=episode.mixcloud_url,
            key=episode.mixcloud_key,
            embed_url=embed_url(episode.mixcloud_key),
            uploaded_at=episode.mixcloud_uploaded_at,
            error=episode.mixcloud_error,
            embed_html=embed_html(episode.mixcloud_key),
        )
        if episode.mixcloud_status == "uploaded" and episode.mixcloud_key and self.mixcloud is not None:
            info = self.mixcloud.check_cloudcast(episode.mixcloud_key)
            out.available = info["available"]
            out.play_count = (info.get("data") or {}).get("play_count")
        return out
