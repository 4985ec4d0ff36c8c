"""Sequential execution of manifest steps and the post hook."""

from __future__ import annotations

import asyncio
import functools
import logging
import os
import shlex
import sys
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from .config import ExecutionContext
from .errors import ScaffoldStepError, ScaffoldValidationError
from .manifest import PromptStep, RunStep, Step

__all__ = [
    "StepExecutor",
    "SubprocessExecutor",
    "execute_steps",
    "post_hook_command",
]


LOGGER = logging.getLogger(__name__)

_POST_HOOK_RUNTIMES: dict[str, tuple[str, ...]] = {
    ".py": (sys.executable,),
    ".js": ("node",),
    ".sh": ("sh",),
}


class StepExecutor(ABC):
    """Runs processes on behalf of the step runner and reports exit statuses."""

    @abstractmethod
    async def run_shell(self, command: str, cwd: Path) -> int:
        """Run ``command`` through the system shell inside ``cwd``."""

    @abstractmethod
    async def run_exec(self, argv: Sequence[str], cwd: Path) -> int:
        """Run ``argv`` directly, without a shell, inside ``cwd``."""


class SubprocessExecutor(StepExecutor):
    """Execute steps as child processes sharing this process' console.

    Each call waits for its child to exit. If the awaiting task is cancelled
    the child is killed and reaped before the cancellation propagates.
    """

    def __init__(self, *, echo: Callable[[str], None] | None = None) -> None:
        self._echo = echo if echo is not None else functools.partial(print, flush=True)

    async def run_shell(self, command: str, cwd: Path) -> int:
        self._echo(f"> {command}")
        process = await asyncio.create_subprocess_shell(command, cwd=cwd)
        return await self._wait(process)

    async def run_exec(self, argv: Sequence[str], cwd: Path) -> int:
        self._echo(f"> {shlex.join(argv)}")
        process = await asyncio.create_subprocess_exec(*argv, cwd=cwd)
        return await self._wait(process)

    @staticmethod
    async def _wait(process: asyncio.subprocess.Process) -> int:
        try:
            return await process.wait()
        except BaseException:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
            raise


def post_hook_command(path: Path) -> list[str]:
    """Return the argv used to run the post hook script at ``path``."""

    runtime = _POST_HOOK_RUNTIMES.get(path.suffix.lower())
    if runtime is not None:
        return [*runtime, str(path)]
    if os.access(path, os.X_OK):
        return [str(path)]
    raise ScaffoldValidationError(f"no runtime known for post hook {path}")


async def _run_checked(index: int, display: str, operation: Awaitable[int]) -> None:
    LOGGER.info("step %s: %s", index, display)
    try:
        exit_code = await operation
    except OSError as exc:
        raise ScaffoldStepError(index, display, None, reason=str(exc)) from exc
    if exit_code != 0:
        raise ScaffoldStepError(index, display, exit_code)


async def execute_steps(
    steps: Sequence[Step],
    context: ExecutionContext,
    *,
    post_hook: Path | None = None,
    executor: StepExecutor | None = None,
) -> int:
    """Run ``steps`` one after another in ``context.target_directory``.

    ``run`` steps go through the shell; ``prompt`` steps invoke
    ``context.agent_command`` with the prompt as its single argument. The
    first failure raises :class:`ScaffoldStepError` and nothing after it runs,
    including the post hook, which otherwise runs last and is numbered after
    the final manifest step.

    Returns the number of processes that were run.
    """

    executor = executor if executor is not None else SubprocessExecutor()
    cwd = context.target_directory

    for index, step in enumerate(steps, start=1):
        if isinstance(step, RunStep):
            await _run_checked(index, step.command, executor.run_shell(step.command, cwd))
        elif isinstance(step, PromptStep):
            argv = [context.agent_command, step.text]
            await _run_checked(index, shlex.join(argv), executor.run_exec(argv, cwd))
        else:
            raise TypeError(f"unsupported step: {step!r}")

    if post_hook is None:
        return len(steps)

    argv = post_hook_command(post_hook)
    await _run_checked(len(steps) + 1, shlex.join(argv), executor.run_exec(argv, cwd))
    return len(steps) + 1
