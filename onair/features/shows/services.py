import logging
from typing import List, Optional, Sequence

from onair.core.errors import (
    ConflictError,
    NotFoundError,
    NotificationError,
    PermissionError,
    ValidationFailure,
)
from onair.db.models.shows import Show
from onair.db.models.users import User
from onair.db.repositories.episodes import EpisodeRepository
from onair.db.repositories.shows import ShowRepository
from onair.db.repositories.users import UserRepository
from onair.features.media.services import AssetService
from onair.features.notifications.services import NotificationSender
from onair.features.permissions import can_manage
from onair.features.shows.schemas import (
    ShowCreateIn,
    ShowOut,
    ShowRequestIn,
    ShowUpdateIn,
)
from onair.utils.slugs import slugify

logger = logging.getLogger(__name__)


class ShowService:
    """
    Logique métier / contrôles d'accès pour Show.
    - Public : lecture par slug.
    - Artiste : demande un show (pending / inactive), lit ses shows.
    - Admin : CRUD complet, approbation / rejet des demandes.
    Les emails sont best-effort : un échec est journalisé, jamais remonté.
    """

    def __init__(
        self,
        *,
        repo: ShowRepository,
        episode_repo: EpisodeRepository,
        user_repo: UserRepository,
        asset_svc: AssetService,
        notifier: Optional[NotificationSender] = None,
    ):
        self.repo = repo
        self.episode_repo = episode_repo
        self.user_repo = user_repo
        self.asset_svc = asset_svc
        self.notifier = notifier

    # -------- helpers --------

    def to_out(self, show: Show) -> ShowOut:
        return ShowOut.build(show, self.asset_svc.for_documents([show]))

    def to_out_list(self, shows: Sequence[Show]) -> List[ShowOut]:
        assets = self.asset_svc.for_documents(shows)
        return [ShowOut.build(s, assets) for s in shows]

    def _get(self, show_id: int) -> Show:
        show = self.repo.get(show_id)
        if not show:
            raise NotFoundError("Show not found")
        return show

    def _free_slug(self, wanted: str, *, exclude_id: Optional[int] = None) -> str:
        slug = slugify(wanted)
        if not slug:
            raise ValidationFailure("Title must contain at least one letter or digit")
        if self.repo.slug_taken(slug, exclude_id=exclude_id):
            raise ConflictError("A show with this title already exists")
        return slug

    def _artist_contact(self, show: Show) -> Optional[User]:
        return self.user_repo.get(show.created_by) if show.created_by else None

    def _notify(self, action: str, send) -> None:
        if self.notifier is None:
            return
        try:
            send()
        except NotificationError as exc:
            logger.error("Show notification '%s' failed: %s", action, exc)

    # -------- Reads --------

    def get_by_slug(self, slug: str) -> Show:
        show = self.repo.get_by_slug(slug)
        if not show:
            raise NotFoundError("Show not found")
        return show

    def list_for(
        self,
        user: User,
        *,
        status: Optional[str] = None,
        featured: Optional[bool] = None,
        genre: Optional[str] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Sequence[Show]:
        # admin : tout ; artiste : seulement ses shows
        return self.repo.search(
            created_by=None if user.role == "admin" else user.id,
            status=status,
            featured=featured,
            genre=genre,
            offset=offset,
            limit=limit,
        )

    def get_one(self, show_id: int, *, user: User) -> Show:
        show = self._get(show_id)
        if not can_manage(user, show.created_by):
            raise PermissionError("Not allowed to view this show")
        return show

    def list_my_shows(self, user: User) -> Sequence[Show]:
        return self.repo.search(created_by=user.id, limit=1000)

    def list_my_approved(self, user: User) -> Sequence[Show]:
        shows = self.repo.search(created_by=user.id, request_status="approved", status="active", limit=1000)
        return sorted(shows, key=lambda s: s.title.lower())

    def list_pending_requests(self) -> Sequence[Show]:
        return self.repo.search(request_status="pending", limit=1000)

    # -------- Artist request --------

    def request_show(self, payload: ShowRequestIn, *, user: User) -> Show:
        if user.role != "artist":
            raise PermissionError("Only artists can request shows")

        data = payload.model_dump(exclude_none=True)
        data["artist_name"] = data.get("artist_name") or user.artist_name or user.name
        data.setdefault("artist_email", user.email)
        show = self.repo.create(
            **data,
            slug=self._free_slug(payload.title),
            created_by=user.id,
            request_status="pending",
            status="inactive",
            featured=False,
        )
        logger.info("Show request #%s '%s' from user #%s", show.id, show.title, user.id)

        self._notify(
            "new_show_request",
            lambda: self.notifier.send_new_show_request(
                artist_name=show.artist_name,
                artist_email=user.email,
                show_title=show.title,
                show_description=show.description,
            ),
        )
        return show

    # -------- Admin CRUD --------

    def create(self, payload: ShowCreateIn, *, user: User) -> Show:
        data = payload.model_dump(exclude_none=True, exclude={"slug", "created_by"})
        slug = self._free_slug(payload.slug or payload.title)
        return self.repo.create(
            **data,
            slug=slug,
            created_by=payload.created_by or user.id,
        )

    def update(self, show_id: int, payload: ShowUpdateIn) -> Show:
        show = self._get(show_id)
        changes = payload.model_dump(exclude_unset=True)

        # le slug d'un show est stable : il ne change que sur demande explicite
        wanted_slug = changes.pop("slug", None)
        if wanted_slug:
            changes["slug"] = self._free_slug(wanted_slug, exclude_id=show.id)
        # champs non nullables : un null explicite est ignoré
        for field in ("title", "artist_name", "frequency", "request_status", "status", "featured"):
            if field in changes and changes[field] is None:
                changes.pop(field)

        return self.repo.update(show, **changes)

    def delete(self, show_id: int) -> None:
        """Supprime le show, ses épisodes et tous leurs fichiers."""
        show = self._get(show_id)
        episodes = self.episode_repo.list_for_show(show.id, limit=100_000)
        for episode in episodes:
            self.asset_svc.remove_all(episode)
            self.episode_repo.delete(episode, commit=False)
        self.asset_svc.remove_all(show)
        self.repo.delete(show, commit=False)
        self.repo.session.commit()
        logger.info("Show #%s deleted with %s episode(s)", show_id, len(episodes))

    # -------- Approval state machine --------

    def approve(self, show_id: int, *, admin_notes: Optional[str] = None) -> Show:
        show = self._get(show_id)
        if show.request_status != "pending":
            raise ConflictError(f"Show request is already {show.request_status}")

        changes = {"request_status": "approved", "status": "active"}
        if admin_notes is not None:
            changes["admin_notes"] = admin_notes
        show = self.repo.update(show, **changes)
        logger.info("Show #%s approved", show.id)

        artist = self._artist_contact(show)
        email = artist.email if artist else show.artist_email
        if email:
            self._notify(
                "show_approved",
                lambda: self.notifier.send_show_approved(
                    email, show.artist_name, show.title, show.slug, show.admin_notes
                ),
            )
        return show

    def reject(self, show_id: int, *, admin_notes: Optional[str]) -> Show:
        if not admin_notes or not admin_notes.strip():
            raise ValidationFailure("Admin notes are required to reject a show")

        show = self._get(show_id)
        if show.request_status != "pending":
            raise ConflictError(f"Show request is already {show.request_status}")

        show = self.repo.update(show, request_status="rejected", admin_notes=admin_notes.strip())
        logger.info("Show #%s rejected", show.id)

        artist = self._artist_contact(show)
        email = artist.email if artist else show.artist_email
        if email:
            self._notify(
                "show_rejected",
                lambda: self.notifier.send_show_rejected(email, show.artist_name, show.title, show.admin_notes),
            )
        return show
