"""String normalisation used to name staging directories."""

from __future__ import annotations

import hashlib
import re
import unicodedata

__all__ = ["slugify", "staging_name"]


_SEPARATORS = re.compile(r"[\s\-_./:]+")
_INVALID = re.compile(r"[^a-z0-9\- ]")
_MAX_SLUG_LENGTH = 48


def slugify(value: str, *, separator: str = "-") -> str:
    """Create a filesystem friendly ASCII slug from ``value``."""

    text = unicodedata.normalize("NFKD", str(value))
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = _SEPARATORS.sub(" ", text)
    text = _INVALID.sub("", text).strip()
    if not text:
        return ""
    return re.sub(r"\s+", separator, text)


def staging_name(uri: str) -> str:
    """Return a stable directory name for staging the scaffold at ``uri``.

    The slug keeps the name readable; the digest keeps two URIs that slugify
    to the same text apart.
    """

    slug = slugify(uri.split("://", 1)[-1])[:_MAX_SLUG_LENGTH].strip("-")
    digest = hashlib.sha256(uri.encode("utf-8")).hexdigest()[:12]
    if not slug:
        return digest
    return f"{slug}-{digest}"
