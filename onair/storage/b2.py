from typing import BinaryIO, Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import ClientError

from onair.storage.base import PresignedUpload, call_with_retries


def make_b2_client(*, endpoint_url: str, region: str, key_id: str, application_key: str):
    """Client S3 boto3 pointé sur l'endpoint compatible S3 de Backblaze B2."""
    cfg = BotoConfig(
        signature_version="s3v4",
        s3={"addressing_style": "path"},
    )
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        region_name=region,
        aws_access_key_id=key_id,
        aws_secret_access_key=application_key,
        config=cfg,
        use_ssl=endpoint_url.startswith("https"),
    )


class B2ObjectStore:
    """
    Backblaze B2 via l'API S3.
    Le Content-Type n'est PAS inclus dans la signature du PUT : B2 renverrait
    SignatureDoesNotMatch dès que le navigateur envoie un type différent.
    """

    name = "b2"

    def __init__(
        self,
        *,
        client,
        bucket: str,
        public_base_url: str = "",
        retry_attempts: int = 3,
        retry_wait: float = 0.5,
    ):
        self.client = client
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait

    def sign_upload(self, key: str, *, expires_in: int, content_type: Optional[str] = None) -> PresignedUpload:
        url = call_with_retries(
            self.client.generate_presigned_url,
            ClientMethod="put_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
            operation="sign",
            key=key,
            attempts=self.retry_attempts,
            wait_seconds=self.retry_wait,
        )
        return PresignedUpload(url=url, method="PUT")

    def delete_object(self, key: str) -> None:
        def _delete():
            try:
                self.client.delete_object(Bucket=self.bucket, Key=key)
            except ClientError as exc:
                code = exc.response.get("Error", {}).get("Code")
                if code in {"NoSuchKey", "404"}:
                    return
                raise

        call_with_retries(
            _delete,
            operation="delete",
            key=key,
            attempts=self.retry_attempts,
            wait_seconds=self.retry_wait,
        )

    def upload_fileobj(self, key: str, fileobj: BinaryIO, content_type: str) -> None:
        call_with_retries(
            self.client.upload_fileobj,
            Fileobj=fileobj,
            Bucket=self.bucket,
            Key=key,
            ExtraArgs={"ContentType": content_type},
            operation="upload",
            key=key,
            attempts=1,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        endpoint = self.client.meta.endpoint_url.rstrip("/")
        return f"{endpoint}/{self.bucket}/{key}"
