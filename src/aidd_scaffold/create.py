"""End-to-end scaffold flows used by the command line interface."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .cleanup import CleanupResult, cleanup
from .config import ExecutionContext
from .confirm import Confirm
from .fetch import ReleaseFetcher
from .manifest import VerificationResult, load_manifest, verify_scaffold
from .resolver import SCAFFOLDS_ROOT, ResolvedScaffold, resolve
from .runner import StepExecutor, SubprocessExecutor, execute_steps
from .sources import ScaffoldSource

__all__ = ["CreateResult", "run_create", "run_verify"]


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreateResult:
    """Summary of a successful :func:`run_create` call."""

    target_directory: Path
    steps_run: int
    was_downloaded: bool
    cleanup: CleanupResult | None = None


def _release(resolved: ResolvedScaffold | None) -> CleanupResult | None:
    if resolved is None:
        return None
    if not resolved.was_downloaded or resolved.staging_directory is None:
        location = resolved.manifest_path.parent
        return CleanupResult(
            "not-found",
            location,
            f"Nothing to clean up: the scaffold was used in place from {location}.",
        )
    return cleanup(resolved.staging_directory)


async def run_create(
    source: ScaffoldSource,
    context: ExecutionContext,
    *,
    confirm: Confirm | None = None,
    fetcher: ReleaseFetcher | None = None,
    executor: StepExecutor | None = None,
    scaffolds_root: Path = SCAFFOLDS_ROOT,
    echo: Callable[[str], None] | None = None,
) -> CreateResult:
    """Resolve ``source`` and run its steps to create ``context.target_directory``.

    The manifest is fully validated before the target directory is created or
    any step runs. Downloaded scaffold files are removed when this returns or
    raises.
    """

    echo = echo if echo is not None else functools.partial(print, flush=True)
    resolved: ResolvedScaffold | None = None
    try:
        resolved = await resolve(
            source,
            context,
            confirm=confirm,
            fetcher=fetcher,
            scaffolds_root=scaffolds_root,
        )
        steps = load_manifest(resolved.manifest_path)

        if resolved.description_text.strip():
            echo(f"\n{resolved.description_text}")

        context.target_directory.mkdir(parents=True, exist_ok=True)
        steps_run = await execute_steps(
            steps,
            context,
            post_hook=resolved.post_hook_path,
            executor=executor if executor is not None else SubprocessExecutor(echo=echo),
        )
    finally:
        released = _release(resolved)

    LOGGER.info("scaffolded %s with %s steps", context.target_directory, steps_run)
    return CreateResult(
        target_directory=context.target_directory,
        steps_run=steps_run,
        was_downloaded=resolved.was_downloaded,
        cleanup=released,
    )


async def run_verify(
    source: ScaffoldSource,
    context: ExecutionContext,
    *,
    confirm: Confirm | None = None,
    fetcher: ReleaseFetcher | None = None,
    scaffolds_root: Path = SCAFFOLDS_ROOT,
) -> VerificationResult:
    """Resolve ``source`` and check its manifest without running any step."""

    resolved: ResolvedScaffold | None = None
    try:
        resolved = await resolve(
            source,
            context,
            confirm=confirm,
            fetcher=fetcher,
            scaffolds_root=scaffolds_root,
        )
        return verify_scaffold(resolved.manifest_path, resolved.post_hook_path)
    finally:
        _release(resolved)
