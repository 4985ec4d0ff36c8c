"""Locate a scaffold's description, manifest and post hook."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from .cleanup import STAGING_DIRNAME, cleanup
from .config import ExecutionContext
from .confirm import Confirm, prompt_confirm, remote_warning
from .errors import ScaffoldCancelledError, ScaffoldValidationError
from .fetch import ReleaseFetcher, extract_archive, is_direct_archive, parse_github_repository
from .manifest import MANIFEST_FILENAME
from .naming import staging_name
from .sources import LocalSource, NamedSource, RemoteSource, ScaffoldSource

__all__ = [
    "DESCRIPTION_FILENAME",
    "POST_HOOK_CANDIDATES",
    "SCAFFOLDS_ROOT",
    "ResolvedScaffold",
    "resolve",
    "staging_directory",
]


LOGGER = logging.getLogger(__name__)

SCAFFOLDS_ROOT = Path(__file__).resolve().parent / "scaffolds"
DESCRIPTION_FILENAME = "README.md"
POST_HOOK_CANDIDATES = ("bin/extension.py", "bin/extension.js", "bin/extension.sh")


@dataclass(frozen=True, slots=True)
class ResolvedScaffold:
    """Files making up a scaffold, located on disk.

    ``staging_directory`` is set only for downloaded scaffolds and is the
    directory :func:`~aidd_scaffold.cleanup.cleanup` must remove once the
    invocation finishes.
    """

    description_text: str
    manifest_path: Path
    post_hook_path: Path | None = None
    was_downloaded: bool = False
    staging_directory: Path | None = None


def _scaffold_files(directory: Path, label: str) -> ResolvedScaffold:
    manifest_path = directory / MANIFEST_FILENAME
    if not manifest_path.is_file():
        raise ScaffoldValidationError(
            f"{MANIFEST_FILENAME} not found at {manifest_path}. "
            f"Check that the scaffold source ({label}) contains a {MANIFEST_FILENAME}."
        )

    readme = directory / DESCRIPTION_FILENAME
    description = readme.read_text(encoding="utf-8") if readme.is_file() else ""

    post_hook = next(
        (directory / candidate for candidate in POST_HOOK_CANDIDATES if (directory / candidate).is_file()),
        None,
    )
    return ResolvedScaffold(
        description_text=description,
        manifest_path=manifest_path,
        post_hook_path=post_hook,
    )


def _named_directory(name: str, scaffolds_root: Path) -> Path:
    separators = {"/", "\\", os.sep, os.altsep or os.sep}
    if (
        not name
        or name in {".", ".."}
        or any(separator in name for separator in separators)
        or Path(name).is_absolute()
    ):
        raise ScaffoldValidationError(
            f"invalid scaffold name {name!r}: names may not be empty or contain path segments"
        )

    root = scaffolds_root.resolve()
    directory = (root / name).resolve()
    if directory == root or not directory.is_relative_to(root):
        raise ScaffoldValidationError(f"invalid scaffold name {name!r}: escapes {root}")
    return directory


def staging_directory(source: RemoteSource, context: ExecutionContext) -> Path:
    """Where the remote ``source`` is extracted for this invocation.

    Inside the target project when it already exists, otherwise in the user
    level cache so the target is not created before the steps run.
    """

    if context.target_directory.is_dir():
        return context.target_directory / STAGING_DIRNAME / "scaffold"
    return context.cache_directory / staging_name(source.uri)


async def _resolve_remote(
    source: RemoteSource,
    context: ExecutionContext,
    *,
    confirm: Confirm,
    fetcher: ReleaseFetcher,
) -> ResolvedScaffold:
    uri = source.uri
    if not source.is_encrypted:
        raise ScaffoldValidationError(
            f"refusing to fetch {uri} over plaintext HTTP; use an https:// URI instead"
        )

    if not await confirm(remote_warning(uri)):
        raise ScaffoldCancelledError("Remote scaffold download cancelled by user.")

    repository = None if is_direct_archive(uri) else parse_github_repository(uri)
    if repository is not None:
        archive_url = await fetcher.latest_release_archive(*repository)
    else:
        archive_url = uri

    staging = staging_directory(source, context)
    try:
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True)

        LOGGER.info("downloading scaffold from %s into %s", archive_url, staging)
        data = await fetcher.download(archive_url)
        extract_archive(data, staging)
        files = _scaffold_files(staging, uri)
    except BaseException:
        cleanup(staging)
        raise

    return ResolvedScaffold(
        description_text=files.description_text,
        manifest_path=files.manifest_path,
        post_hook_path=files.post_hook_path,
        was_downloaded=True,
        staging_directory=staging,
    )


async def resolve(
    source: ScaffoldSource,
    context: ExecutionContext,
    *,
    confirm: Confirm | None = None,
    fetcher: ReleaseFetcher | None = None,
    scaffolds_root: Path = SCAFFOLDS_ROOT,
) -> ResolvedScaffold:
    """Locate the scaffold identified by ``source``.

    Named and local scaffolds are read in place without touching the network.
    Remote scaffolds must use HTTPS and are only fetched after ``confirm``
    returns ``True``; a bare GitHub repository URI is first resolved to its
    latest release with a single API call.

    Raises
    ------
    ScaffoldValidationError
        For invalid names, plaintext URIs and scaffolds without a manifest.
    ScaffoldNetworkError
        When the release lookup or the download fails.
    ScaffoldCancelledError
        When the user does not confirm a remote download.
    """

    if isinstance(source, NamedSource):
        directory = _named_directory(source.name, scaffolds_root)
        LOGGER.info("using bundled scaffold %s", source.name)
        return _scaffold_files(directory, source.name)

    if isinstance(source, LocalSource):
        LOGGER.info("using local scaffold %s", source.path)
        return _scaffold_files(source.path, source.uri)

    if isinstance(source, RemoteSource):
        return await _resolve_remote(
            source,
            context,
            confirm=confirm if confirm is not None else prompt_confirm,
            fetcher=fetcher if fetcher is not None else ReleaseFetcher(),
        )

    raise TypeError(f"unsupported scaffold source: {source!r}")
