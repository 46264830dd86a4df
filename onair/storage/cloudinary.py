import os
import time
from typing import BinaryIO, Optional

import cloudinary
import cloudinary.uploader
import cloudinary.utils

from onair.storage.base import PresignedUpload, call_with_retries, resource_kind


class CloudinaryObjectStore:
    """
    Cloudinary : l'upload direct passe par un formulaire POST signé
    (api_key, timestamp, public_id, signature). Les fichiers audio sont des
    ressources de type "video" côté Cloudinary.
    """

    name = "cloudinary"

    def __init__(
        self,
        *,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "",
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder.strip("/")
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    # ---------- helpers ----------

    def public_id(self, key: str) -> str:
        stem, _ = os.path.splitext(key)
        return f"{self.folder}/{stem}" if self.folder else stem

    @staticmethod
    def resource_type(key: str, content_type: Optional[str] = None) -> str:
        return "image" if resource_kind(key, content_type) == "image" else "video"

    # ---------- ObjectStore ----------

    def sign_upload(self, key: str, *, expires_in: int, content_type: Optional[str] = None) -> PresignedUpload:
        resource_type = self.resource_type(key, content_type)
        params = {"public_id": self.public_id(key), "timestamp": int(time.time())}

        signature = call_with_retries(
            cloudinary.utils.api_sign_request,
            params,
            self.api_secret,
            operation="sign",
            key=key,
            attempts=self.retry_attempts,
            wait_seconds=self.retry_wait,
        )
        fields = {k: str(v) for k, v in params.items()}
        fields.update({"api_key": self.api_key, "signature": signature})
        url = f"https://api.cloudinary.com/v1_1/{self.cloud_name}/{resource_type}/upload"
        return PresignedUpload(url=url, method="POST", fields=fields)

    def delete_object(self, key: str) -> None:
        # destroy répond {"result": "not found"} pour une clé absente : idempotent
        call_with_retries(
            cloudinary.uploader.destroy,
            self.public_id(key),
            resource_type=self.resource_type(key),
            invalidate=True,
            operation="delete",
            key=key,
            attempts=self.retry_attempts,
            wait_seconds=self.retry_wait,
        )

    def upload_fileobj(self, key: str, fileobj: BinaryIO, content_type: str) -> None:
        call_with_retries(
            cloudinary.uploader.upload,
            fileobj,
            public_id=self.public_id(key),
            resource_type=self.resource_type(key, content_type),
            overwrite=True,
            operation="upload",
            key=key,
            attempts=1,
        )

    def public_url(self, key: str) -> str:
        ext = os.path.splitext(key)[1].lstrip(".") or None
        url, _ = cloudinary.utils.cloudinary_url(
            self.public_id(key),
            resource_type=self.resource_type(key),
            format=ext,
            secure=True,
        )
        return url
