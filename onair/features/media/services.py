"""
➡️ But : Orchestrer les fichiers audio / image des documents (shows, épisodes, posts).

AssetService : écrit / remplace / retire l'Asset d'un slot et supprime l'ancien objet
du stockage en best-effort (un échec est journalisé et tracé en OrphanedObject).

UploadService : handshake d'upload direct (presign puis confirm) et upload proxifié
par l'API. Le stockage est injecté : aucun SDK n'est importé ici.
"""

import io
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

from sqlmodel import SQLModel

from onair.core.errors import (
    NotFoundError,
    PermissionError,
    StorageError,
    ValidationFailure,
)
from onair.db.models.assets import Asset
from onair.db.models.episodes import Episode
from onair.db.models.posts import Post
from onair.db.models.shows import Show
from onair.db.models.users import User
from onair.db.repositories.assets import AssetRepository, OrphanedObjectRepository
from onair.db.repositories.episodes import EpisodeRepository
from onair.db.repositories.posts import PostRepository
from onair.db.repositories.shows import ShowRepository
from onair.features.media.schemas import ConfirmIn, PresignIn, PresignOut
from onair.features.permissions import can_manage
from onair.storage.base import ObjectStore
from onair.utils.media_files import (
    ALLOWED_AUDIO_MIME,
    ALLOWED_IMAGE_MIME,
    build_object_key,
    key_belongs_to,
    key_matches_slot,
    minutes_from_seconds,
    probe_audio,
    validate_bytes,
)

logger = logging.getLogger(__name__)

Document = Union[Show, Episode, Post]

# Slots disponibles par collection
SLOTS: Dict[str, tuple] = {
    "episode": ("audio", "image"),
    "show": ("audio", "image"),
    "post": ("image",),
}


def slot_field(slot: str) -> str:
    return f"{slot}_asset_id"


class AssetService:
    def __init__(
        self,
        *,
        asset_repo: AssetRepository,
        orphan_repo: OrphanedObjectRepository,
        store: ObjectStore,
    ):
        self.asset_repo = asset_repo
        self.orphan_repo = orphan_repo
        self.store = store

    @property
    def session(self):
        return self.asset_repo.session

    # -------- lecture --------

    def get_many(self, ids: Iterable[Optional[int]]) -> Dict[int, Asset]:
        found: Dict[int, Asset] = {}
        for asset_id in {i for i in ids if i}:
            asset = self.asset_repo.get(asset_id)
            if asset is not None:
                found[asset_id] = asset
        return found

    def for_documents(self, docs: Iterable[SQLModel]) -> Dict[int, Asset]:
        ids = []
        for doc in docs:
            for field in ("audio_asset_id", "image_asset_id"):
                ids.append(getattr(doc, field, None))
        return self.get_many(ids)

    # -------- suppression best-effort --------

    def delete_stored_object(self, key: str) -> bool:
        """Supprime l'objet ; en cas d'échec, trace un orphelin et renvoie False."""
        try:
            self.store.delete_object(key)
            return True
        except StorageError as exc:
            logger.warning("Could not delete stored object %s: %s", key, exc)
            self.orphan_repo.record(key, str(exc), commit=False)
            return False

    def _discard(self, asset: Asset) -> None:
        self.delete_stored_object(asset.object_key)
        self.asset_repo.delete(asset, commit=False)

    # -------- écriture --------

    def replace(
        self,
        document: Document,
        slot: str,
        *,
        key: str,
        url: str,
        filename: Optional[str] = None,
        size: Optional[int] = None,
        duration: Optional[float] = None,
        bitrate: Optional[int] = None,
        mime_type: Optional[str] = None,
    ) -> Asset:
        """
        Enregistre l'asset du slot. Le dernier appel gagne : si le slot contenait
        une autre clé, l'ancien objet est supprimé du stockage (best-effort).
        """
        field = slot_field(slot)
        previous_id = getattr(document, field)
        previous = self.asset_repo.get(previous_id) if previous_id else None

        metadata = dict(
            url=url,
            filename=filename,
            bytes=size,
            duration=duration,
            bitrate=bitrate,
            mime_type=mime_type,
        )

        if previous is not None and previous.object_key == key:
            # même clé confirmée deux fois : mise à jour des métadonnées seulement
            asset = self.asset_repo.update(previous, commit=False, **metadata)
        else:
            stale = self.asset_repo.get_by_key(key)
            if stale is not None and self.asset_repo.is_referenced(stale.id):
                raise ValidationFailure("This file is already attached to another slot")
            if stale is not None:
                # ligne restée sans document (confirm interrompu) : on la reprend
                asset = self.asset_repo.update(stale, commit=False, **metadata)
            else:
                asset = self.asset_repo.create(commit=False, object_key=key, **metadata)
            setattr(document, field, asset.id)
            self.session.add(document)
            self.session.flush()
            if previous is not None:
                logger.info("Replacing %s of %s #%s: %s -> %s", slot, type(document).__name__,
                            document.id, previous.object_key, key)
                self._discard(previous)

        return asset

    def remove(self, document: Document, slot: str) -> bool:
        """Retire l'asset du slot ; False s'il n'y avait rien."""
        field = slot_field(slot)
        asset_id = getattr(document, field)
        asset = self.asset_repo.get(asset_id) if asset_id else None
        if asset is None:
            return False
        setattr(document, field, None)
        self.session.add(document)
        self.session.flush()
        self._discard(asset)
        return True

    def remove_all(self, document: Document) -> None:
        for slot in ("audio", "image"):
            if hasattr(document, slot_field(slot)):
                self.remove(document, slot)


@dataclass
class LoadedDocument:
    collection: str
    document: Document
    owner_id: Optional[int]


class UploadService:
    def __init__(
        self,
        *,
        show_repo: ShowRepository,
        episode_repo: EpisodeRepository,
        post_repo: PostRepository,
        asset_svc: AssetService,
        store: ObjectStore,
        presign_ttl: int = 3600,
        max_audio_mb: int = 500,
        max_image_mb: int = 10,
        min_audio_bitrate_kbps: Optional[int] = None,
    ):
        self.show_repo = show_repo
        self.episode_repo = episode_repo
        self.post_repo = post_repo
        self.asset_svc = asset_svc
        self.store = store
        self.presign_ttl = presign_ttl
        self.max_audio_mb = max_audio_mb
        self.max_image_mb = max_image_mb
        self.min_audio_bitrate_kbps = min_audio_bitrate_kbps

    @property
    def session(self):
        return self.show_repo.session

    # -------- helpers --------

    def load(self, collection: str, doc_id: int) -> LoadedDocument:
        if collection == "show":
            show = self.show_repo.get(doc_id)
            if not show:
                raise NotFoundError("Show not found")
            return LoadedDocument(collection, show, show.created_by)
        if collection == "episode":
            episode = self.episode_repo.get(doc_id)
            if not episode:
                raise NotFoundError("Episode not found")
            show = self.show_repo.get(episode.show_id)
            return LoadedDocument(collection, episode, show.created_by if show else None)
        if collection == "post":
            post = self.post_repo.get(doc_id)
            if not post:
                raise NotFoundError("Post not found")
            return LoadedDocument(collection, post, post.author_id)
        raise NotFoundError(f"Unknown collection: {collection}")

    def load_managed(self, collection: str, doc_id: int, user: User) -> LoadedDocument:
        loaded = self.load(collection, doc_id)
        if not can_manage(user, loaded.owner_id):
            raise PermissionError("You are not allowed to manage this document")
        return loaded

    @staticmethod
    def _check_slot(collection: str, slot: str) -> None:
        if slot not in SLOTS[collection]:
            raise ValidationFailure(f"A {collection} has no '{slot}' slot")

    def _apply_side_effects(self, loaded: LoadedDocument, slot: str, duration: Optional[float]) -> None:
        # Durée de l'épisode (minutes) dérivée de l'audio, seulement si absente
        doc = loaded.document
        if loaded.collection == "episode" and slot == "audio" and duration and doc.duration is None:
            doc.duration = minutes_from_seconds(duration)
            self.session.add(doc)

    # -------- presign --------

    def presign(self, collection: str, doc_id: int, payload: PresignIn, *, user: User) -> PresignOut:
        """Aucune validation de contenu ici : ni type, ni taille, ni statut du show."""
        if not (payload.filename or "").strip():
            raise ValidationFailure("Filename is required")
        self.load_managed(collection, doc_id, user)
        self._check_slot(collection, payload.slot)

        key = build_object_key(collection=collection, doc_id=doc_id, filename=payload.filename, slot=payload.slot)
        signed = self.store.sign_upload(key, expires_in=self.presign_ttl, content_type=payload.content_type)
        logger.info("Presigned %s upload for %s #%s (%s)", payload.slot, collection, doc_id, key)
        return PresignOut(
            presigned_url=signed.url,
            key=key,
            file_url=self.store.public_url(key),
            method=signed.method,
            fields=signed.fields,
            headers=signed.headers,
            expires_in=self.presign_ttl,
        )

    # -------- confirm --------

    def confirm(self, collection: str, doc_id: int, payload: ConfirmIn, *, user: User) -> LoadedDocument:
        loaded = self.load_managed(collection, doc_id, user)
        self._check_slot(collection, payload.slot)
        if not key_belongs_to(payload.key, collection=collection, doc_id=doc_id):
            raise ValidationFailure("Key does not belong to this document")
        if not key_matches_slot(payload.key, payload.slot):
            raise ValidationFailure(f"Key is not an {payload.slot} file")

        default_mime = "audio/mpeg" if payload.slot == "audio" else "image/jpeg"
        self.asset_svc.replace(
            loaded.document,
            payload.slot,
            key=payload.key,
            url=payload.file_url,
            filename=payload.filename,
            size=payload.size,
            duration=payload.duration if payload.slot == "audio" else None,
            bitrate=payload.bitrate if payload.slot == "audio" else None,
            mime_type=payload.content_type or default_mime,
        )
        self._apply_side_effects(loaded, payload.slot, payload.duration)
        self.session.commit()
        self.session.refresh(loaded.document)
        logger.info("Confirmed %s upload for %s #%s (%s)", payload.slot, collection, doc_id, payload.key)
        return loaded

    # -------- upload proxifié (ancien chemin) --------

    def store_proxied(
        self,
        collection: str,
        doc_id: int,
        slot: str,
        *,
        data: bytes,
        filename: Optional[str],
        user: User,
    ) -> LoadedDocument:
        loaded = self.load_managed(collection, doc_id, user)
        self._check_slot(collection, slot)

        allowed = ALLOWED_AUDIO_MIME if slot == "audio" else ALLOWED_IMAGE_MIME
        max_mb = self.max_audio_mb if slot == "audio" else self.max_image_mb
        try:
            mime, ext, size = validate_bytes(data, max_mb=max_mb, allowed_mime=allowed)
        except ValueError as e:
            raise ValidationFailure(str(e))

        duration, bitrate = (None, None)
        if slot == "audio":
            duration, bitrate = probe_audio(data)
            if self.min_audio_bitrate_kbps and bitrate is not None and bitrate < self.min_audio_bitrate_kbps:
                raise ValidationFailure(
                    f"Audio bitrate {bitrate} kbps is below the minimum of {self.min_audio_bitrate_kbps} kbps"
                )

        key = build_object_key(collection=collection, doc_id=doc_id, filename=f"upload{ext}", slot=slot)
        self.store.upload_fileobj(key, io.BytesIO(data), mime)

        self.asset_svc.replace(
            loaded.document,
            slot,
            key=key,
            url=self.store.public_url(key),
            filename=filename,
            size=size,
            duration=duration,
            bitrate=bitrate,
            mime_type=mime,
        )
        self._apply_side_effects(loaded, slot, duration)
        self.session.commit()
        self.session.refresh(loaded.document)
        return loaded

    # -------- retrait --------

    def remove(self, collection: str, doc_id: int, slot: str, *, user: User) -> LoadedDocument:
        loaded = self.load_managed(collection, doc_id, user)
        self._check_slot(collection, slot)
        if not self.asset_svc.remove(loaded.document, slot):
            raise NotFoundError(f"No {slot} to delete")
        self.session.commit()
        self.session.refresh(loaded.document)
        return loaded
