"""Text folding used for every case- and diacritic-insensitive comparison."""

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def fold(text: str | None) -> str:
    """Lowercase, strip diacritics, and collapse whitespace.

    >>> fold("  Bratislava -  Petržalka ")
    'bratislava - petrzalka'
    """

    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE_RE.sub(" ", stripped.lower()).strip()


def location_key(value: str | None) -> str | None:
    folded = fold(value)
    return folded or None


_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(*parts: object, max_length: int = 80) -> str:
    """URL-safe ASCII slug of the non-empty parts.

    >>> slugify("Bratislava", "Petržalka", "3-izb", 68.5)
    'bratislava-petrzalka-3-izb-68-5'
    """

    text = " ".join(str(part) for part in parts if part not in (None, ""))
    slug = _SLUG_RE.sub("-", fold(text)).strip("-")
    return slug[:max_length].rstrip("-")
