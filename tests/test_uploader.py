import json
import wave

import httpx
import pytest

from onair.client.uploader import DirectUploader, UploadCancelled, UploadError, probe_audio

API = "https://radio.test/api/v1"


@pytest.fixture()
def wav_file(tmp_path):
    path = tmp_path / "emission.wav"
    with wave.open(str(path), "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(8000)
        w.writeframes(b"\x00\x00" * 8000)
    return path


class FakeBackend:
    """API + stockage simulés ; garde les requêtes reçues."""

    def __init__(self, *, storage_status=200, presign_status=200, method="PUT"):
        self.storage_status = storage_status
        self.presign_status = presign_status
        self.method = method
        self.api_calls = []
        self.stored = []

    def api(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.api_calls.append((request.url.path, body, request.headers.get("authorization")))
        if request.url.path.endswith("/upload/presign/episode/12"):
            if self.presign_status != 200:
                return httpx.Response(self.presign_status, json={"detail": "Not allowed to manage this document"})
            return httpx.Response(200, json={
                "presignedUrl": "https://storage.test/episodes/12_1.wav?sig=abc",
                "key": "episodes/12_1.wav",
                "fileUrl": "https://cdn.test/episodes/12_1.wav",
                "method": self.method,
                "fields": {"signature": "s"} if self.method == "POST" else {},
                "headers": {},
                "expiresIn": 3600,
            })
        return httpx.Response(200, json={"message": "Audio uploaded successfully", "episode": {"id": 12}})

    def storage(self, request: httpx.Request) -> httpx.Response:
        self.stored.append(request)
        return httpx.Response(self.storage_status, text="denied" if self.storage_status >= 300 else "")


def _uploader(backend, chunk_size=4096):
    return DirectUploader(
        API,
        "access-token",
        api_client=httpx.Client(transport=httpx.MockTransport(backend.api)),
        storage_client=httpx.Client(transport=httpx.MockTransport(backend.storage)),
        chunk_size=chunk_size,
    )


def test_probe_audio_reads_duration_and_estimates_bitrate(wav_file):
    duration, bitrate = probe_audio(str(wav_file))
    assert duration == pytest.approx(1.0, abs=0.01)
    assert bitrate == round(wav_file.stat().st_size * 8 / duration / 1000)


def test_probe_audio_unreadable_file(tmp_path):
    path = tmp_path / "notes.mp3"
    path.write_bytes(b"not audio at all")
    assert probe_audio(str(path)) == (None, None)


def test_upload_presigns_sends_and_confirms(wav_file):
    backend = FakeBackend()
    progress = []

    result = _uploader(backend).upload_episode_audio(12, str(wav_file), on_progress=lambda s, t: progress.append((s, t)))

    size = wav_file.stat().st_size
    assert result.key == "episodes/12_1.wav"
    assert result.size == size
    assert result.duration == pytest.approx(1.0, abs=0.01)
    assert result.document["episode"]["id"] == 12

    (presign_path, presign_body, auth), (confirm_path, confirm_body, _) = backend.api_calls
    assert presign_path == "/api/v1/upload/presign/episode/12"
    assert presign_body == {"filename": "emission.wav", "contentType": "audio/x-wav", "slot": "audio"}
    assert auth == "Bearer access-token"
    assert confirm_path == "/api/v1/upload/confirm/episode/12"
    assert confirm_body["key"] == "episodes/12_1.wav"
    assert confirm_body["size"] == size
    assert confirm_body["bitrate"] == result.bitrate

    put = backend.stored[0]
    assert put.method == "PUT"
    assert "authorization" not in put.headers
    assert put.headers["content-type"] == "audio/x-wav"
    assert put.content == wav_file.read_bytes()

    assert progress[-1] == (size, size)
    assert [s for s, _ in progress] == sorted(s for s, _ in progress)


def test_upload_signed_form_post(wav_file):
    backend = FakeBackend(method="POST")

    _uploader(backend).upload("episode", 12, str(wav_file))

    post = backend.stored[0]
    assert post.method == "POST"
    assert post.headers["content-type"].startswith("multipart/form-data")
    assert b'name="signature"' in post.content
    assert b'filename="emission.wav"' in post.content


def test_storage_rejection_skips_confirm(wav_file):
    backend = FakeBackend(storage_status=403)

    with pytest.raises(UploadError, match="403"):
        _uploader(backend).upload_episode_audio(12, str(wav_file))

    assert [path for path, _, _ in backend.api_calls] == ["/api/v1/upload/presign/episode/12"]


def test_presign_refusal_is_reported(wav_file):
    backend = FakeBackend(presign_status=403)

    with pytest.raises(UploadError, match="Not allowed to manage this document"):
        _uploader(backend).upload_episode_audio(12, str(wav_file))
    assert backend.stored == []


def test_cancel_stops_sending_and_never_confirms(wav_file):
    backend = FakeBackend()
    uploader = _uploader(backend, chunk_size=1024)

    with pytest.raises(UploadCancelled):
        uploader.upload_episode_audio(12, str(wav_file), on_progress=lambda sent, total: uploader.cancel())

    assert len(backend.api_calls) == 1


def test_missing_file(tmp_path):
    with pytest.raises(UploadError, match="No such file"):
        _uploader(FakeBackend()).upload_episode_audio(12, str(tmp_path / "ghost.mp3"))
