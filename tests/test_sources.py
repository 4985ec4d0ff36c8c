from __future__ import annotations

from pathlib import Path

import pytest

from aidd_scaffold.sources import LocalSource, NamedSource, RemoteSource, parse_source


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("next-shadcn", NamedSource("next-shadcn")),
        ("  scaffold-example ", NamedSource("scaffold-example")),
        ("file:///tmp/scaffold", LocalSource("file:///tmp/scaffold")),
        ("https://github.com/org/repo", RemoteSource("https://github.com/org/repo")),
        ("HTTPS://github.com/org/repo", RemoteSource("HTTPS://github.com/org/repo")),
        ("http://example.com/scaffold.tgz", RemoteSource("http://example.com/scaffold.tgz")),
    ],
)
def test_parse_source_classifies_references(reference, expected):
    assert parse_source(reference) == expected


def test_local_source_converts_uri_to_path():
    source = LocalSource("file:///tmp/my%20scaffold")

    assert source.path == Path("/tmp/my scaffold")


def test_remote_source_encryption_flag():
    assert RemoteSource("https://github.com/org/repo").is_encrypted
    assert not RemoteSource("http://github.com/org/repo").is_encrypted


def test_sources_are_immutable():
    source = NamedSource("next-shadcn")

    with pytest.raises(AttributeError):
        source.name = "other"  # type: ignore[misc]
