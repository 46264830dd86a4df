from datetime import datetime, timedelta

import pytest

from onair.core.config import jwt_settings
from onair.security.password import hash_password, verify_password
from onair.security.tokens import (
    create_upload_token,
    decode_token,
    mint_token_pair,
    one_time_token_is_valid,
    upload_token_matches,
)
from onair.utils.media_files import (
    build_object_key,
    extension_for,
    key_belongs_to,
    minutes_from_seconds,
    round_half_up,
    validate_bytes,
)
from onair.utils.slugs import slugify, unique_slug

NOW = datetime(2024, 6, 1, 12, 0)


# -----------------------------
# Tokens
# -----------------------------
@pytest.mark.parametrize(
    "token, expires, expected",
    [
        ("abc", NOW + timedelta(seconds=1), True),
        ("abc", NOW, False),
        ("abc", NOW - timedelta(hours=1), False),
        (None, NOW + timedelta(hours=1), False),
        ("", NOW + timedelta(hours=1), False),
        ("abc", None, False),
    ],
)
def test_one_time_token_validity(token, expires, expected):
    assert one_time_token_is_valid(token, expires, now=NOW) is expected


def test_token_pair_types():
    pair, jti = mint_token_pair(user_id=7, email="a@onair.test", role="artist", settings=jwt_settings)
    access = decode_token(pair["access_token"], jwt_settings)
    refresh = decode_token(pair["refresh_token"], jwt_settings)
    assert access["typ"] == "access" and access["role"] == "artist"
    assert refresh["typ"] == "refresh" and refresh["jti"] == jti
    assert access["sub"] == refresh["sub"] == "7"


def test_upload_token_is_bound_to_key():
    token = create_upload_token(key="episodes/1_1.mp3", expires_in=60, settings=jwt_settings)
    assert upload_token_matches(token, "episodes/1_1.mp3", jwt_settings)
    assert not upload_token_matches(token, "episodes/2_1.mp3", jwt_settings)

    access, _ = mint_token_pair(user_id=1, email="a@onair.test", role="admin", settings=jwt_settings)
    assert not upload_token_matches(access["access_token"], "episodes/1_1.mp3", jwt_settings)


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", None)


# -----------------------------
# Slugs
# -----------------------------
@pytest.mark.parametrize(
    "text, slug",
    [
        ("Électro Nuit #3 !", "electro-nuit-3"),
        ("  Matinale   Jazz  ", "matinale-jazz"),
        ("Ça va? Oui!", "ca-va-oui"),
        ("!!!", ""),
    ],
)
def test_slugify(text, slug):
    assert slugify(text) == slug


def test_unique_slug_appends_counter():
    taken = {"nuits-electro", "nuits-electro-2"}
    assert unique_slug("Nuits Électro", taken=taken.__contains__) == "nuits-electro-3"
    assert unique_slug("Autre", taken=taken.__contains__) == "autre"


# -----------------------------
# Fichiers média
# -----------------------------
@pytest.mark.parametrize("value, expected", [(0.5, 1), (1.49, 1), (1.5, 2), (2.5, 3), (0.0, 0)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_minutes_from_seconds():
    assert minutes_from_seconds(3605) == 60
    assert minutes_from_seconds(90) == 2
    assert minutes_from_seconds(89) == 1


def test_object_keys():
    key = build_object_key(collection="episode", doc_id=12, filename="Mix.FLAC", slot="audio", now_ms=1718031234567)
    assert key == "episodes/12_1718031234567.flac"
    assert extension_for("noext", "image") == ".jpg"
    assert extension_for("weird.tar.gz!!", "audio") == ".mp3"

    assert key_belongs_to(key, collection="episode", doc_id=12)
    assert not key_belongs_to(key, collection="episode", doc_id=1)
    assert not key_belongs_to("episodes/12_1/../../x.mp3", collection="episode", doc_id=12)
    assert not key_belongs_to("shows/12_1.mp3", collection="episode", doc_id=12)


def test_validate_bytes_checks_size_and_type():
    png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
    assert validate_bytes(png, max_mb=1, allowed_mime={"image/png"})[:2] == ("image/png", ".png")
    with pytest.raises(ValueError, match="Empty"):
        validate_bytes(b"", max_mb=1, allowed_mime={"image/png"})
    with pytest.raises(ValueError, match="not allowed"):
        validate_bytes(png, max_mb=1, allowed_mime={"audio/mpeg"})
