"""Scaffold source references supplied on the command line."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

__all__ = [
    "LocalSource",
    "NamedSource",
    "RemoteSource",
    "ScaffoldSource",
    "parse_source",
]


@dataclass(frozen=True, slots=True)
class NamedSource:
    """A scaffold bundled with the tool, addressed by directory name."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class LocalSource:
    """A scaffold directory on the local filesystem given as a ``file://`` URI."""

    uri: str

    @property
    def path(self) -> Path:
        parsed = urlparse(self.uri)
        location = url2pathname(unquote(parsed.path))
        if parsed.netloc and parsed.netloc != "localhost":
            location = f"//{parsed.netloc}{location}"
        return Path(location)

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True, slots=True)
class RemoteSource:
    """A scaffold hosted on a web server, usually a git hosting service."""

    uri: str

    @property
    def is_encrypted(self) -> bool:
        return self.uri.lower().startswith("https://")

    def __str__(self) -> str:
        return self.uri


ScaffoldSource = Union[NamedSource, LocalSource, RemoteSource]


def parse_source(reference: str) -> ScaffoldSource:
    """Classify ``reference`` as a named, local or remote scaffold source.

    Plain ``http://`` references are classified as remote so that the resolver
    can reject them with the exact URI instead of treating them as names.
    """

    reference = reference.strip()
    lowered = reference.lower()
    if lowered.startswith(("http://", "https://")):
        return RemoteSource(reference)
    if lowered.startswith("file://"):
        return LocalSource(reference)
    return NamedSource(reference)
