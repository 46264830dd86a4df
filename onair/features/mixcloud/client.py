"""
Client Mixcloud : publication d'un épisode archivé (upload multipart de l'API Mixcloud).

L'audio est d'abord rapatrié depuis le stockage objet dans un fichier temporaire,
puis envoyé avec le titre, la description, les tags du show et la pochette.
"""

import logging
import os
import tempfile
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

MIXCLOUD_API_URL = "https://api.mixcloud.com"
MAX_TAGS = 5


@dataclass
class MixcloudResult:
    success: bool
    key: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None


def embed_url(key: Optional[str]) -> Optional[str]:
    if not key:
        return None
    return f"https://www.mixcloud.com/widget/iframe/?feed={quote(key, safe='')}&hide_cover=1&light=1"


def embed_html(key: Optional[str]) -> Optional[str]:
    url = embed_url(key)
    if url is None:
        return None
    return f'<iframe width="100%" height="120" src="{url}" frameborder="0" allow="autoplay"></iframe>'


class MixcloudClient:
    def __init__(
        self,
        *,
        access_token: Optional[str],
        username: str = "OnAirOnSite",
        client: Optional[httpx.Client] = None,
        timeout: float = 600.0,
    ):
        self.access_token = access_token
        self.username = username
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    # -------- helpers --------

    def _download_to(self, url: str, path: str) -> str:
        """Télécharge `url` dans `path` par morceaux (les fichiers audio font des centaines de Mo)."""
        with self.client.stream("GET", url) as resp:
            resp.raise_for_status()
            with open(path, "wb") as out:
                for chunk in resp.iter_bytes():
                    out.write(chunk)
        return path

    def _download_picture(self, url: str) -> Optional[bytes]:
        try:
            resp = self.client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Could not download cover %s, publishing without it: %s", url, exc)
            return None
        return resp.content

    @staticmethod
    def build_form(*, title: str, description: Optional[str], tags: List[str]) -> Dict[str, str]:
        data: Dict[str, str] = {"name": title, "publish": "1"}
        if description:
            data["description"] = description
        tags = [t for t in tags if t][:MAX_TAGS] or ["radio"]
        for index, tag in enumerate(tags):
            data[f"tags-{index}-tag"] = tag
        return data

    # -------- API --------

    def upload(
        self,
        *,
        title: str,
        description: Optional[str],
        tags: List[str],
        audio_url: str,
        audio_filename: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> MixcloudResult:
        if not self.access_token:
            return MixcloudResult(success=False, error="MIXCLOUD_ACCESS_TOKEN is not configured")

        data = self.build_form(title=title, description=description, tags=tags)
        picture = self._download_picture(image_url) if image_url else None

        with tempfile.TemporaryDirectory(prefix="mixcloud_") as tmp:
            local_path = os.path.join(tmp, "episode.mp3")
            try:
                self._download_to(audio_url, local_path)
            except (httpx.HTTPError, OSError) as exc:
                return MixcloudResult(success=False, error=f"Could not download audio: {exc}")

            with ExitStack() as stack:
                audio_fh = stack.enter_context(open(local_path, "rb"))
                files: Dict[str, Any] = {
                    "mp3": (audio_filename or "episode.mp3", audio_fh, "audio/mpeg"),
                }
                if picture:
                    files["picture"] = ("cover.jpg", picture, "image/jpeg")

                logger.info("Uploading '%s' to Mixcloud", title)
                try:
                    resp = self.client.post(
                        f"{MIXCLOUD_API_URL}/upload/",
                        params={"access_token": self.access_token},
                        data=data,
                        files=files,
                    )
                except httpx.HTTPError as exc:
                    return MixcloudResult(success=False, error=str(exc))

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        key = (body.get("result") or {}).get("key")
        if resp.is_success and key:
            return MixcloudResult(success=True, key=key, url=f"https://www.mixcloud.com{key}")

        error = (body.get("error") or {}).get("message") or f"Upload failed ({resp.status_code})"
        return MixcloudResult(success=False, error=error)

    def check_cloudcast(self, key: str) -> Dict[str, Any]:
        try:
            resp = self.client.get(f"{MIXCLOUD_API_URL}{key}")
        except httpx.HTTPError as exc:
            return {"available": False, "error": str(exc)}
        if not resp.is_success:
            return {"available": False}
        try:
            data = resp.json()
        except ValueError:
            return {"available": False, "error": "Invalid response from Mixcloud"}
        return {
            "available": True,
            "data": {
                "name": data.get("name"),
                "url": data.get("url"),
                "pictures": data.get("pictures"),
                "play_count": data.get("play_count"),
            },
        }
