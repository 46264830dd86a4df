import os
import shutil
from pathlib import Path
from typing import AsyncIterable, BinaryIO, Optional
from urllib.parse import quote

from starlette.concurrency import run_in_threadpool

from onair.core.errors import StorageError
from onair.security.tokens import JWTSettings, create_upload_token
from onair.storage.base import PresignedUpload


class LocalObjectStore:
    """
    Stockage sur disque (dev / petites installations).
    Les fichiers vivent sous MEDIA_ROOT et sont servis sous /media.
    L'« URL présignée » pointe vers PUT /api/v1/upload/local/{key}?token=<jwt>.
    """

    name = "local"

    def __init__(self, *, root: str, public_base_url: str, jwt: JWTSettings, api_prefix: str = "/api/v1"):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")
        self.jwt = jwt
        self.api_prefix = api_prefix

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path == self.root or self.root not in path.parents:
            raise StorageError(f"Invalid key: {key}")
        return path

    def sign_upload(self, key: str, *, expires_in: int, content_type: Optional[str] = None) -> PresignedUpload:
        self.path_for(key)
        token = create_upload_token(key=key, expires_in=expires_in, settings=self.jwt)
        url = f"{self.public_base_url}{self.api_prefix}/upload/local/{quote(key)}?token={token}"
        return PresignedUpload(url=url, method="PUT")

    def delete_object(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"delete failed for {key}: {exc}") from exc

    def upload_fileobj(self, key: str, fileobj: BinaryIO, content_type: str) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as out:
                shutil.copyfileobj(fileobj, out)
        except OSError as exc:
            raise StorageError(f"upload failed for {key}: {exc}") from exc

    async def write_stream(self, key: str, chunks: AsyncIterable[bytes]) -> int:
        """
        Écrit le corps d'un PUT signé ; renvoie le nombre d'octets reçus.
        Les écritures disque passent par le threadpool pour ne pas bloquer la boucle.
        """
        path = self.path_for(key)
        tmp = path.with_name(path.name + ".part")
        written = 0
        try:
            await run_in_threadpool(path.parent.mkdir, parents=True, exist_ok=True)
            out = await run_in_threadpool(open, tmp, "wb")
            try:
                async for chunk in chunks:
                    await run_in_threadpool(out.write, chunk)
                    written += len(chunk)
            finally:
                await run_in_threadpool(out.close)
            await run_in_threadpool(os.replace, tmp, path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise StorageError(f"upload failed for {key}: {exc}") from exc
        return written

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/media/{quote(key)}"
