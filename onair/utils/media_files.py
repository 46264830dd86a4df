import io
import math
import os
import time
from typing import Optional, Set, Tuple

import filetype
from mutagen import File as MutagenFile
from mutagen import MutagenError


# Allow-lists du chemin proxifié (upload via l'API)
ALLOWED_IMAGE_MIME: Set[str] = {"image/jpeg", "image/png", "image/webp", "image/gif"}

ALLOWED_AUDIO_MIME: Set[str] = {
    "audio/mpeg",      # mp3
    "audio/mp4",       # m4a
    "audio/x-m4a",
    "audio/aac",
    "audio/wav",
    "audio/x-wav",
    "audio/ogg",
    "audio/x-flac",
    "audio/flac",
}

# Collection (segment d'URL) -> préfixe de clé dans le bucket
COLLECTION_PREFIXES = {
    "episode": "episodes",
    "show": "shows",
    "post": "posts",
}

DEFAULT_EXTENSIONS = {"audio": ".mp3", "image": ".jpg"}

# Extensions reconnues par slot (une clé d'image ne peut pas aller dans le slot audio)
KNOWN_EXTENSIONS = {
    "audio": {".mp3", ".m4a", ".aac", ".wav", ".ogg", ".oga", ".flac"},
    "image": {".jpg", ".jpeg", ".png", ".webp", ".gif", ".avif"},
}


def detect_mime_and_ext(file_bytes: bytes) -> Tuple[str, str]:
    """
    Détecte le type réel via 'filetype'.
    Retourne (real_mime, ext_with_dot).
    """
    kind = filetype.guess(file_bytes)
    real_mime = kind.mime if kind else "application/octet-stream"
    ext = "." + (kind.extension if kind else "bin")
    return real_mime, ext


def validate_bytes(
    file_bytes: bytes,
    *,
    max_mb: int,
    allowed_mime: Set[str],
) -> Tuple[str, str, int]:
    """
    Retourne (real_mime, ext_with_dot, size_bytes).
    Lève ValueError si invalide.
    """
    size = len(file_bytes)
    if size == 0:
        raise ValueError("Empty file")
    if size > max_mb * 1024 * 1024:
        raise ValueError(f"File too large (max {max_mb} MB)")

    real_mime, ext = detect_mime_and_ext(file_bytes)

    if real_mime not in allowed_mime:
        raise ValueError(f"File type not allowed: {real_mime}")

    return real_mime, ext, size


def extension_for(filename: Optional[str], slot: str) -> str:
    """Extension (avec le point) tirée du nom de fichier, sinon .mp3 / .jpg selon le slot."""
    ext = os.path.splitext(filename or "")[1].lower()
    if not ext or len(ext) > 6 or not ext[1:].isalnum():
        return DEFAULT_EXTENSIONS[slot]
    return ext


def build_object_key(
    *,
    collection: str,
    doc_id: int,
    filename: Optional[str],
    slot: str,
    now_ms: Optional[int] = None,
) -> str:
    """
    Construit la clé de l'objet : <collections>/<id>_<epoch-ms>.<ext>
    Exemple:
      collection="episode", doc_id=12 -> episodes/12_1718031234567.mp3
    """
    prefix = COLLECTION_PREFIXES[collection]
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}/{doc_id}_{stamp}{extension_for(filename, slot)}"


def key_belongs_to(key: str, *, collection: str, doc_id: int) -> bool:
    prefix = f"{COLLECTION_PREFIXES[collection]}/{doc_id}_"
    return key.startswith(prefix) and "/" not in key[len(prefix):] and ".." not in key


def key_matches_slot(key: str, slot: str) -> bool:
    """False si l'extension de la clé est celle de l'autre type de fichier."""
    ext = os.path.splitext(key)[1].lower()
    other = "image" if slot == "audio" else "audio"
    return ext not in KNOWN_EXTENSIONS[other]


def probe_audio(data: bytes) -> Tuple[Optional[float], Optional[int]]:
    """
    Retourne (durée en secondes, bitrate en kbps) lus par mutagen, ou (None, None).
    Le bitrate est estimé à partir de la taille si le conteneur ne le donne pas.
    """
    try:
        audio = MutagenFile(io.BytesIO(data))
    except MutagenError:
        return None, None
    if audio is None or getattr(audio, "info", None) is None:
        return None, None

    length = getattr(audio.info, "length", None) or None
    bitrate = getattr(audio.info, "bitrate", None)
    if bitrate:
        kbps = round(bitrate / 1000)
    elif length:
        kbps = estimate_bitrate_kbps(len(data), length)
    else:
        kbps = None
    return length, kbps


def estimate_bitrate_kbps(size_bytes: int, duration_seconds: float) -> Optional[int]:
    if not duration_seconds or duration_seconds <= 0:
        return None
    return round(size_bytes * 8 / duration_seconds / 1000)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def minutes_from_seconds(seconds: float) -> int:
    return round_half_up(seconds / 60)
