"""
➡️ But : Uploader un fichier directement vers le stockage objet, sans le faire transiter par l'API.

Étapes :

presign : l'API vérifie les droits et renvoie une URL signée (presignedUrl, key, fileUrl) ;

envoi des octets vers presignedUrl, par morceaux, avec un callback de progression (envoyés, total) ;

probe : durée lue par mutagen, bitrate estimé à partir de la taille ;

confirm : l'API enregistre l'asset sur le document.

Le client HTTP du stockage ne porte aucun identifiant de l'API : l'autorisation est dans l'URL.
Si l'envoi échoue ou est annulé (cancel()), rien n'est confirmé.

🔹 Exemple :

    uploader = DirectUploader("https://radio.example/api/v1", access_token)
    uploader.upload_episode_audio(12, "emission.mp3", on_progress=lambda sent, total: print(sent, total))
"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Dict, Iterator, Optional, Tuple

import filetype
import httpx
from mutagen import File as MutagenFile
from mutagen import MutagenError

from onair.utils.media_files import estimate_bitrate_kbps

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

DEFAULT_CHUNK_SIZE = 1024 * 1024
DEFAULT_CONTENT_TYPES = {"audio": "audio/mpeg", "image": "image/jpeg"}


class UploadError(Exception):
    """Échec réseau, réponse non-2xx ou fichier illisible."""


class UploadCancelled(UploadError):
    pass


@dataclass
class UploadResult:
    key: str
    file_url: str
    size: int
    duration: Optional[float]
    bitrate: Optional[int]
    document: Dict[str, Any]


def probe_audio(path: str) -> Tuple[Optional[float], Optional[int]]:
    """(durée en secondes, bitrate estimé en kbps) ; (None, None) si illisible."""
    try:
        audio = MutagenFile(path)
    except MutagenError as exc:
        logger.warning("Could not probe %s: %s", path, exc)
        return None, None
    if audio is None or getattr(audio, "info", None) is None:
        return None, None
    duration = getattr(audio.info, "length", None) or None
    if not duration:
        return None, None
    return duration, estimate_bitrate_kbps(os.path.getsize(path), duration)


class _ProgressReader:
    """Fichier en lecture qui rapporte la progression et s'interrompt sur annulation."""

    def __init__(self, fh: BinaryIO, total: int, on_progress: Optional[ProgressCallback], cancelled: threading.Event):
        self.fh = fh
        self.total = total
        self.sent = 0
        self.on_progress = on_progress
        self.cancelled = cancelled

    def read(self, size: int = -1) -> bytes:
        if self.cancelled.is_set():
            raise UploadCancelled("Upload cancelled")
        data = self.fh.read(size)
        if data:
            self.sent += len(data)
            if self.on_progress:
                self.on_progress(self.sent, self.total)
        return data

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        while True:
            chunk = self.read(chunk_size)
            if not chunk:
                break
            yield chunk


class DirectUploader:
    def __init__(
        self,
        api_base_url: str,
        access_token: str,
        *,
        api_client: Optional[httpx.Client] = None,
        storage_client: Optional[httpx.Client] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        timeout: float = 600.0,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.access_token = access_token
        self.api_client = api_client or httpx.Client(timeout=30.0)
        # pas d'en-tête Authorization : l'URL signée suffit
        self.storage_client = storage_client or httpx.Client(timeout=timeout)
        self.chunk_size = chunk_size
        self._cancelled = threading.Event()

    # -------- helpers --------

    def cancel(self) -> None:
        """Interrompt l'envoi en cours (appelable depuis un autre thread)."""
        self._cancelled.set()

    def _api(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.api_client.post(
                f"{self.api_base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        except httpx.HTTPError as exc:
            raise UploadError(f"API request failed: {exc}") from exc
        if not resp.is_success:
            raise UploadError(f"API error {resp.status_code} on {path}: {_detail(resp)}")
        return resp.json()

    def _send(self, signed: Dict[str, Any], path: str, content_type: str, on_progress: Optional[ProgressCallback]) -> None:
        total = os.path.getsize(path)
        method = signed.get("method", "PUT").upper()
        with open(path, "rb") as fh:
            reader = _ProgressReader(fh, total, on_progress, self._cancelled)
            try:
                if method == "POST":
                    # formulaire signé (Cloudinary) : champs + fichier
                    resp = self.storage_client.post(
                        signed["presignedUrl"],
                        data=signed.get("fields") or {},
                        files={"file": (os.path.basename(path), reader, content_type)},
                    )
                else:
                    headers = {"Content-Type": content_type, "Content-Length": str(total)}
                    headers.update(signed.get("headers") or {})
                    resp = self.storage_client.put(
                        signed["presignedUrl"],
                        content=reader.iter_chunks(self.chunk_size),
                        headers=headers,
                    )
            except UploadCancelled:
                logger.info("Upload of %s cancelled after %s/%s bytes", path, reader.sent, total)
                raise
            except httpx.HTTPError as exc:
                raise UploadError(f"Storage upload failed: {exc}") from exc
        if not resp.is_success:
            raise UploadError(f"Storage rejected the upload ({resp.status_code}): {_detail(resp)}")

    # -------- API --------

    def upload(
        self,
        collection: str,
        doc_id: int,
        path: str,
        *,
        slot: str = "audio",
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        if not os.path.isfile(path):
            raise UploadError(f"No such file: {path}")
        self._cancelled.clear()

        filename = os.path.basename(path)
        if content_type is None:
            kind = filetype.guess(path)
            content_type = kind.mime if kind else DEFAULT_CONTENT_TYPES[slot]

        signed = self._api(
            f"/upload/presign/{collection}/{doc_id}",
            {"filename": filename, "contentType": content_type, "slot": slot},
        )
        self._send(signed, path, content_type, on_progress)

        size = os.path.getsize(path)
        duration, bitrate = probe_audio(path) if slot == "audio" else (None, None)

        document = self._api(
            f"/upload/confirm/{collection}/{doc_id}",
            {
                "key": signed["key"],
                "fileUrl": signed["fileUrl"],
                "filename": filename,
                "size": size,
                "duration": duration,
                "bitrate": bitrate,
                "contentType": content_type,
                "slot": slot,
            },
        )
        logger.info("Uploaded %s to %s #%s as %s", filename, collection, doc_id, signed["key"])
        return UploadResult(
            key=signed["key"],
            file_url=signed["fileUrl"],
            size=size,
            duration=duration,
            bitrate=bitrate,
            document=document,
        )

    def upload_episode_audio(self, episode_id: int, path: str, *, on_progress: Optional[ProgressCallback] = None) -> UploadResult:
        return self.upload("episode", episode_id, path, slot="audio", on_progress=on_progress)

    def upload_show_audio(self, show_id: int, path: str, *, on_progress: Optional[ProgressCallback] = None) -> UploadResult:
        return self.upload("show", show_id, path, slot="audio", on_progress=on_progress)


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)
