import io
from urllib.parse import parse_qs, urlparse

import pytest
from botocore.stub import Stubber
from fastapi.testclient import TestClient

from onair.core.config import Settings, jwt_settings
from onair.core.errors import StorageError
from onair.main import create_app
from onair.storage import cloudinary as cloudinary_store
from onair.storage.b2 import B2ObjectStore, make_b2_client
from onair.storage.base import call_with_retries, resource_kind
from onair.storage.cloudinary import CloudinaryObjectStore
from onair.storage.factory import build_object_store
from onair.storage.local import LocalObjectStore


# -----------------------------
# Helpers communs
# -----------------------------
def test_resource_kind_prefers_content_type():
    assert resource_kind("shows/1_1.bin", "image/png") == "image"
    assert resource_kind("shows/1_1.jpg", "audio/mpeg") == "audio"
    assert resource_kind("shows/1_1.webp") == "image"
    assert resource_kind("shows/1_1.flac") == "audio"


def test_call_with_retries_retries_then_succeeds():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("reset")
        return "ok"

    assert call_with_retries(flaky, operation="sign", key="k", attempts=3, wait_seconds=0) == "ok"
    assert len(calls) == 3


def test_call_with_retries_gives_up_with_storage_error():
    calls = []

    def broken():
        calls.append(1)
        raise ConnectionError("down")

    with pytest.raises(StorageError, match="delete failed for k"):
        call_with_retries(broken, operation="delete", key="k", attempts=2, wait_seconds=0)
    assert len(calls) == 2


# -----------------------------
# Backblaze B2
# -----------------------------
@pytest.fixture()
def b2_client():
    return make_b2_client(
        endpoint_url="https://s3.eu-central-003.backblazeb2.com",
        region="eu-central-003",
        key_id="key-id",
        application_key="app-key",
    )


def test_b2_presigned_put_does_not_sign_content_type(b2_client):
    store = B2ObjectStore(client=b2_client, bucket="onair-media")

    signed = store.sign_upload("episodes/3_1.mp3", expires_in=900, content_type="audio/mpeg")

    assert signed.method == "PUT"
    parsed = urlparse(signed.url)
    assert parsed.path == "/onair-media/episodes/3_1.mp3"
    query = parse_qs(parsed.query)
    assert query["X-Amz-Expires"] == ["900"]
    assert query["X-Amz-SignedHeaders"] == ["host"]


def test_b2_public_url(b2_client):
    assert B2ObjectStore(client=b2_client, bucket="b").public_url("shows/1_1.jpg") == (
        "https://s3.eu-central-003.backblazeb2.com/b/shows/1_1.jpg"
    )
    store = B2ObjectStore(client=b2_client, bucket="b", public_base_url="https://f003.backblazeb2.com/file/b/")
    assert store.public_url("shows/1_1.jpg") == "https://f003.backblazeb2.com/file/b/shows/1_1.jpg"


def test_b2_delete_is_idempotent(b2_client):
    store = B2ObjectStore(client=b2_client, bucket="onair-media", retry_wait=0)
    with Stubber(b2_client) as stub:
        stub.add_response("delete_object", {}, {"Bucket": "onair-media", "Key": "episodes/1_1.mp3"})
        stub.add_client_error("delete_object", service_error_code="NoSuchKey", http_status_code=404)
        store.delete_object("episodes/1_1.mp3")
        store.delete_object("episodes/1_1.mp3")
        stub.assert_no_pending_responses()


def test_b2_delete_failure_becomes_storage_error(b2_client):
    store = B2ObjectStore(client=b2_client, bucket="onair-media", retry_attempts=2, retry_wait=0)
    with Stubber(b2_client) as stub:
        stub.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
        stub.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StorageError):
            store.delete_object("episodes/1_1.mp3")


# -----------------------------
# Cloudinary
# -----------------------------
@pytest.fixture()
def cloud():
    return CloudinaryObjectStore(cloud_name="demo", api_key="123", api_secret="shh", folder="onair", retry_wait=0)


def test_cloudinary_signs_post_form(cloud, monkeypatch):
    monkeypatch.setattr(cloudinary_store.time, "time", lambda: 1700000000)

    signed = cloud.sign_upload("episodes/4_1.mp3", expires_in=3600, content_type="audio/mpeg")

    assert signed.method == "POST"
    assert signed.url == "https://api.cloudinary.com/v1_1/demo/video/upload"
    assert signed.fields["public_id"] == "onair/episodes/4_1"
    assert signed.fields["timestamp"] == "1700000000"
    assert signed.fields["api_key"] == "123"
    assert len(signed.fields["signature"]) == 40


def test_cloudinary_images_are_image_resources(cloud):
    signed = cloud.sign_upload("shows/2_1.png", expires_in=60)
    assert signed.url.endswith("/image/upload")


def test_cloudinary_delete_uses_public_id(cloud, monkeypatch):
    calls = []
    monkeypatch.setattr(
        cloudinary_store.cloudinary.uploader,
        "destroy",
        lambda public_id, **kw: calls.append((public_id, kw)) or {"result": "not found"},
    )

    cloud.delete_object("episodes/4_1.mp3")

    assert calls == [("onair/episodes/4_1", {"resource_type": "video", "invalidate": True})]


def test_cloudinary_public_url(cloud):
    url = cloud.public_url("shows/2_1.jpg")
    assert url.startswith("https://res.cloudinary.com/demo/image/upload/")
    assert url.endswith("onair/shows/2_1.jpg")


# -----------------------------
# Disque local
# -----------------------------
@pytest.fixture()
def local_store(tmp_path):
    return LocalObjectStore(root=str(tmp_path), public_base_url="http://testserver", jwt=jwt_settings)


def test_local_rejects_keys_outside_root(local_store):
    with pytest.raises(StorageError):
        local_store.sign_upload("../escape.mp3", expires_in=60)


def test_local_upload_and_delete(local_store, tmp_path):
    local_store.upload_fileobj("shows/1_1.jpg", io.BytesIO(b"img"), "image/jpeg")
    assert (tmp_path / "shows" / "1_1.jpg").read_bytes() == b"img"

    local_store.delete_object("shows/1_1.jpg")
    local_store.delete_object("shows/1_1.jpg")
    assert not (tmp_path / "shows" / "1_1.jpg").exists()


def test_local_signed_put_round_trip(local_store, notifier):
    client = TestClient(create_app(object_store=local_store, notifier=notifier))
    signed = local_store.sign_upload("episodes/7_1.mp3", expires_in=60)
    path = signed.url.replace("http://testserver", "")

    r = client.put(path, content=b"ID3" + b"\x00" * 100)

    assert r.status_code == 200
    assert r.json() == {"key": "episodes/7_1.mp3", "size": 103}
    served = client.get("/media/episodes/7_1.mp3")
    assert served.status_code == 200
    assert served.content.startswith(b"ID3")


def test_local_put_rejects_bad_or_foreign_token(local_store, notifier):
    client = TestClient(create_app(object_store=local_store, notifier=notifier))
    token = parse_qs(urlparse(local_store.sign_upload("episodes/7_1.mp3", expires_in=60).url).query)["token"][0]

    assert client.put("/api/v1/upload/local/episodes/8_1.mp3", params={"token": token}, content=b"x").status_code == 403
    assert client.put("/api/v1/upload/local/episodes/7_1.mp3", params={"token": "nope"}, content=b"x").status_code == 403


def test_local_put_disabled_for_remote_store(client):
    r = client.put("/api/v1/upload/local/episodes/1_1.mp3", params={"token": "x"}, content=b"x")
    assert r.status_code == 404


# -----------------------------
# Fabrique
# -----------------------------
def test_factory_builds_each_backend(tmp_path):
    assert build_object_store(Settings(STORAGE_BACKEND="local", MEDIA_ROOT=str(tmp_path))).name == "local"
    assert build_object_store(Settings(STORAGE_BACKEND="b2", B2_KEY_ID="k", B2_APPLICATION_KEY="s")).name == "b2"
    assert build_object_store(Settings(STORAGE_BACKEND="cloudinary", CLOUDINARY_CLOUD_NAME="demo")).name == "cloudinary"
    with pytest.raises(ValueError):
        build_object_store(Settings(STORAGE_BACKEND="ftp"))
