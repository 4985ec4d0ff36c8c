"""Remote scaffold lookup, download and extraction."""

from __future__ import annotations

import asyncio
import functools
import http.client
import io
import json
import logging
import tarfile
import urllib.error
import urllib.request
from pathlib import Path, PurePosixPath
from typing import Any, Callable
from urllib.parse import urlparse

from .errors import ScaffoldNetworkError, ScaffoldValidationError

__all__ = [
    "GITHUB_API",
    "ReleaseFetcher",
    "extract_archive",
    "is_direct_archive",
    "parse_github_repository",
]


LOGGER = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
_GITHUB_HOSTS = {"github.com", "www.github.com"}
_TOKEN_HOSTS = _GITHUB_HOSTS | {"api.github.com"}
_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz")
_ARCHIVE_SEGMENTS = ("/archive/", "/tarball/", "/releases/download/")
_TRANSIENT_STATUS = {408, 429, 500, 502, 503, 504}
_USER_AGENT = "aidd-scaffold"


def parse_github_repository(uri: str) -> tuple[str, str] | None:
    """Return ``(owner, repo)`` for a bare ``https://github.com/<owner>/<repo>`` URI."""

    parsed = urlparse(uri)
    if parsed.scheme.lower() != "https" or parsed.netloc.lower() not in _GITHUB_HOSTS:
        return None
    if parsed.query or parsed.fragment:
        return None

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) != 2:
        return None

    owner, repo = parts
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        return None
    return owner, repo


def is_direct_archive(uri: str) -> bool:
    """Whether ``uri`` already points at a release tarball."""

    parsed = urlparse(uri)
    path = parsed.path.lower()
    if parsed.netloc.lower() == "codeload.github.com":
        return True
    if path.endswith(_ARCHIVE_SUFFIXES):
        return True
    return any(segment in path for segment in _ARCHIVE_SEGMENTS)


class ReleaseFetcher:
    """Fetch release metadata and archives over HTTPS.

    Blocking ``urllib`` calls run in a worker thread so callers can simply
    ``await`` them. Transient failures (connection errors, timeouts, HTTP 408,
    429 and 5xx) are retried ``attempts`` times with a linear backoff; other
    HTTP errors fail immediately.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        opener: Callable[[urllib.request.Request], Any] | None = None,
        attempts: int = 3,
        backoff: float = 0.5,
        timeout: float = 30.0,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self._token = token or None
        self._opener = opener if opener is not None else functools.partial(urllib.request.urlopen, timeout=timeout)
        self._attempts = attempts
        self._backoff = backoff

    async def latest_release_archive(self, owner: str, repo: str) -> str:
        """Return the tarball URL of the latest published release of ``owner/repo``."""

        url = f"{GITHUB_API}/repos/{owner}/{repo}/releases/latest"
        try:
            body = await self._request(url, accept="application/vnd.github+json")
        except urllib.error.HTTPError as exc:
            if exc.code == 404:
                raise ScaffoldNetworkError(
                    f"no published release found for {owner}/{repo}"
                ) from exc
            raise ScaffoldNetworkError(
                f"release lookup for {owner}/{repo} failed with HTTP {exc.code}"
            ) from exc

        try:
            payload = json.loads(body.decode("utf-8"))
            tarball_url = payload["tarball_url"]
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as exc:
            raise ScaffoldNetworkError(
                f"unexpected release metadata for {owner}/{repo}"
            ) from exc

        if not isinstance(tarball_url, str) or not tarball_url:
            raise ScaffoldNetworkError(f"release of {owner}/{repo} has no tarball URL")

        LOGGER.info("latest release of %s/%s is %s", owner, repo, payload.get("tag_name", "?"))
        return tarball_url

    async def download(self, url: str) -> bytes:
        """Download ``url`` and return the response body."""

        try:
            return await self._request(url, accept="application/octet-stream")
        except urllib.error.HTTPError as exc:
            raise ScaffoldNetworkError(f"HTTP {exc.code} downloading scaffold from {url}") from exc

    async def _request(self, url: str, *, accept: str) -> bytes:
        request = urllib.request.Request(url, headers={"Accept": accept, "User-Agent": _USER_AGENT})
        if self._token and urlparse(url).netloc.lower() in _TOKEN_HOSTS:
            # unredirected so the token is not forwarded to archive mirrors
            request.add_unredirected_header("Authorization", f"Bearer {self._token}")

        last_error: BaseException | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                return await asyncio.to_thread(self._read, request)
            except urllib.error.HTTPError as exc:
                if exc.code not in _TRANSIENT_STATUS:
                    raise
                last_error = exc
            except (urllib.error.URLError, http.client.HTTPException, TimeoutError, ConnectionError) as exc:
                last_error = exc

            LOGGER.warning(
                "request to %s failed (attempt %s of %s): %s",
                url,
                attempt,
                self._attempts,
                last_error,
            )
            if attempt < self._attempts and self._backoff > 0:
                await asyncio.sleep(self._backoff * attempt)

        raise ScaffoldNetworkError(
            f"failed to fetch {url} after {self._attempts} attempts: {_describe(last_error)}"
        ) from last_error

    def _read(self, request: urllib.request.Request) -> bytes:
        with self._opener(request) as response:
            return response.read()


def _describe(error: BaseException | None) -> str:
    if isinstance(error, urllib.error.HTTPError):
        return f"HTTP {error.code}"
    if isinstance(error, urllib.error.URLError):
        return str(error.reason)
    return str(error) if error is not None else "unknown error"


def _member_path(name: str, strip: int) -> PurePosixPath | None:
    path = PurePosixPath(name)
    if path.is_absolute() or ".." in path.parts:
        raise ScaffoldValidationError(f"archive member escapes the staging directory: {name}")
    parts = [part for part in path.parts if part not in ("", ".")][strip:]
    if not parts:
        return None
    return PurePosixPath(*parts)


def _common_root(members: list[tarfile.TarInfo]) -> str | None:
    roots = {PurePosixPath(member.name).parts[0] for member in members if PurePosixPath(member.name).parts}
    if len(roots) != 1:
        return None
    root = roots.pop()
    if any(member.name.strip("/") == root and not member.isdir() for member in members):
        return None
    return root


def extract_archive(data: bytes, destination: Path) -> int:
    """Extract a gzip tarball into ``destination`` and return the file count.

    Release archives wrap everything in a single top level directory, which is
    stripped. Members that would land outside ``destination`` are rejected;
    links and special files are skipped.
    """

    try:
        archive = tarfile.open(fileobj=io.BytesIO(data), mode="r:*")
    except tarfile.TarError as exc:
        raise ScaffoldValidationError(f"downloaded scaffold is not a tar archive: {exc}") from exc

    written = 0
    with archive:
        members = archive.getmembers()
        strip = 1 if _common_root(members) is not None else 0
        root = destination.resolve()

        for member in members:
            relative = _member_path(member.name, strip)
            if relative is None:
                continue

            target = (root / relative).resolve()
            if not target.is_relative_to(root):
                raise ScaffoldValidationError(
                    f"archive member escapes the staging directory: {member.name}"
                )

            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            if not member.isfile():
                LOGGER.warning("skipping archive member %s (links and special files are not extracted)", member.name)
                continue

            source = archive.extractfile(member)
            if source is None:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with source:
                target.write_bytes(source.read())
            if member.mode & 0o111:
                target.chmod(0o755)
            written += 1

    LOGGER.debug("extracted %s files into %s", written, destination)
    return written
