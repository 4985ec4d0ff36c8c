"""Removal of staged remote scaffold files."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

__all__ = ["STAGING_DIRNAME", "CleanupResult", "cleanup", "cleanup_project"]


LOGGER = logging.getLogger(__name__)

STAGING_DIRNAME = ".aidd"


@dataclass(frozen=True, slots=True)
class CleanupResult:
    """What :func:`cleanup` did; ``action`` is ``"removed"`` or ``"not-found"``."""

    action: Literal["removed", "not-found"]
    path: Path
    message: str

    @property
    def removed(self) -> bool:
        return self.action == "removed"


def cleanup(location: Path) -> CleanupResult:
    """Remove the staging directory ``location``.

    Calling this for a location that does not exist is not an error; the
    result reports that there was nothing to remove. When the staging
    directory lived inside a ``.aidd`` working directory that is now empty,
    that directory is removed as well.
    """

    location = Path(location)
    if not location.exists():
        message = f"Nothing to clean up: {location} does not exist."
        LOGGER.info("nothing to clean up at %s", location)
        return CleanupResult("not-found", location, message)

    if location.is_dir() and not location.is_symlink():
        shutil.rmtree(location)
    else:
        location.unlink()

    parent = location.parent
    if parent.name == STAGING_DIRNAME and parent.is_dir() and not any(parent.iterdir()):
        parent.rmdir()

    message = f"Removed {location}"
    LOGGER.info("removed staging directory %s", location)
    return CleanupResult("removed", location, message)


def cleanup_project(folder: Path) -> CleanupResult:
    """Remove the ``.aidd`` working directory of the project at ``folder``."""

    return cleanup(Path(folder) / STAGING_DIRNAME)
