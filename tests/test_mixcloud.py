import httpx
import pytest

from onair.features.mixcloud.client import MixcloudClient, embed_html, embed_url

AUDIO_URL = "https://cdn.test/episodes/5_1.mp3"
IMAGE_URL = "https://cdn.test/shows/2_1.jpg"


class FakeMixcloudApi:
    def __init__(self, *, upload_response=None, audio_status=200, image_status=200):
        self.upload_response = upload_response or httpx.Response(
            200, json={"result": {"success": True, "key": "/OnAirOnSite/live-set/"}}
        )
        self.audio_status = audio_status
        self.image_status = image_status
        self.uploads = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url.startswith(AUDIO_URL):
            return httpx.Response(self.audio_status, content=b"ID3" + b"\x00" * 64)
        if url.startswith(IMAGE_URL):
            return httpx.Response(self.image_status, content=b"\xff\xd8\xff")
        if request.url.path == "/upload/":
            self.uploads.append(request)
            return self.upload_response
        if request.url.path == "/OnAirOnSite/live-set/":
            return httpx.Response(200, json={"name": "Live set", "url": "https://www.mixcloud.com/OnAirOnSite/live-set/", "play_count": 4})
        return httpx.Response(404)


def _client(api, token="tok"):
    return MixcloudClient(access_token=token, client=httpx.Client(transport=httpx.MockTransport(api)))


def test_build_form_caps_tags_and_defaults():
    form = MixcloudClient.build_form(title="Live", description=None, tags=["a", "", "b", "c", "d", "e", "f"])
    assert form["name"] == "Live"
    assert "description" not in form
    assert [form[f"tags-{i}-tag"] for i in range(5)] == ["a", "b", "c", "d", "e"]
    assert "tags-5-tag" not in form

    assert MixcloudClient.build_form(title="x", description="d", tags=[])["tags-0-tag"] == "radio"


def test_upload_success(tmp_path):
    api = FakeMixcloudApi()

    result = _client(api).upload(
        title="Live set",
        description="Recorded live",
        tags=["house"],
        audio_url=AUDIO_URL,
        audio_filename="live.mp3",
        image_url=IMAGE_URL,
    )

    assert result.success
    assert result.key == "/OnAirOnSite/live-set/"
    assert result.url == "https://www.mixcloud.com/OnAirOnSite/live-set/"
    sent = api.uploads[0]
    assert sent.url.params["access_token"] == "tok"
    assert b'name="mp3"; filename="live.mp3"' in sent.content
    assert b'name="picture"' in sent.content
    assert b"Recorded live" in sent.content


def test_upload_without_cover_when_picture_fails():
    api = FakeMixcloudApi(image_status=404)
    result = _client(api).upload(title="t", description=None, tags=[], audio_url=AUDIO_URL, image_url=IMAGE_URL)
    assert result.success
    assert b'name="picture"' not in api.uploads[0].content


def test_upload_reports_api_error():
    api = FakeMixcloudApi(upload_response=httpx.Response(400, json={"error": {"message": "Invalid tag"}}))
    result = _client(api).upload(title="t", description=None, tags=["x"], audio_url=AUDIO_URL)
    assert not result.success
    assert result.error == "Invalid tag"


def test_upload_reports_audio_download_failure():
    api = FakeMixcloudApi(audio_status=404)
    result = _client(api).upload(title="t", description=None, tags=[], audio_url=AUDIO_URL)
    assert not result.success
    assert result.error.startswith("Could not download audio")
    assert api.uploads == []


def test_upload_without_token():
    result = MixcloudClient(access_token=None).upload(title="t", description=None, tags=[], audio_url=AUDIO_URL)
    assert not result.success
    assert "MIXCLOUD_ACCESS_TOKEN" in result.error


def test_check_cloudcast():
    info = _client(FakeMixcloudApi()).check_cloudcast("/OnAirOnSite/live-set/")
    assert info["available"] is True
    assert info["data"]["play_count"] == 4
    assert _client(FakeMixcloudApi()).check_cloudcast("/nope/")["available"] is False


@pytest.mark.parametrize("key", [None, ""])
def test_embed_helpers_without_key(key):
    assert embed_url(key) is None
    assert embed_html(key) is None


def test_embed_html_wraps_widget_url():
    html = embed_html("/OnAirOnSite/live-set/")
    assert html.startswith("<iframe")
    assert "feed=%2FOnAirOnSite%2Flive-set%2F" in html
