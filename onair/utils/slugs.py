import re
import unicodedata
from typing import Callable


def slugify(text: str) -> str:
    """
    "Électro Nuit #3 !" -> "electro-nuit-3"
    Minuscules, accents retirés, tout ce qui n'est pas alphanumérique devient un tiret.
    """
    normalized = unicodedata.normalize("NFD", text or "")
    ascii_only = "".join(c for c in normalized if unicodedata.category(c) != "Mn")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_only.lower())
    return slug.strip("-")


def unique_slug(text: str, *, taken: Callable[[str], bool]) -> str:
    """Ajoute -2, -3... tant que `taken(slug)` est vrai."""
    base = slugify(text) or "item"
    slug, n = base, 2
    while taken(slug):
        slug = f"{base}-{n}"
        n += 1
    return slug
