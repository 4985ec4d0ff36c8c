"""Confirmation gate shown before untrusted code is downloaded."""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from typing import Awaitable, Callable, TextIO

from .errors import ScaffoldCancelledError

__all__ = [
    "Confirm",
    "fixed_answer",
    "prompt_confirm",
    "remote_warning",
]


LOGGER = logging.getLogger(__name__)

Confirm = Callable[[str], Awaitable[bool]]
"""Asynchronous ``message -> bool`` capability used by the resolver."""

_AFFIRMATIVE = {"y", "yes"}


def remote_warning(uri: str) -> str:
    """Return the warning shown before fetching the scaffold at ``uri``."""

    return (
        "\nWarning: you are about to download and execute code from a remote URI:\n"
        f"  {uri}\n\n"
        "This code will run on your machine. Only proceed if you trust the source.\n"
        "Continue? (y/N): "
    )


async def prompt_confirm(
    message: str,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> bool:
    """Ask ``message`` on the terminal and wait for a yes/no answer.

    Only ``y`` or ``yes`` (any case) confirms. A closed or failing input stream
    raises :class:`ScaffoldCancelledError` so the caller never waits forever.
    """

    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout

    stdout.write(message)
    stdout.flush()

    try:
        line = await _read_line(stdin)
    except (OSError, ValueError) as exc:
        LOGGER.debug("confirmation input failed: %s", exc)
        raise ScaffoldCancelledError("Confirmation input is unavailable; cancelled.") from exc

    if not line:
        raise ScaffoldCancelledError("Input closed before confirmation; cancelled.")

    return line.strip().lower() in _AFFIRMATIVE


def _read_line(stdin: TextIO) -> asyncio.Future[str]:
    """Read one line from ``stdin`` on a daemon thread.

    The thread is never joined, so cancelling the returned future lets the
    process exit even while the read is still blocked.
    """

    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def _settle(line: str | None, error: BaseException | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(line)

    def _worker() -> None:
        line: str | None = None
        error: BaseException | None = None
        try:
            line = stdin.readline()
        except (OSError, ValueError) as exc:
            error = exc
        try:
            loop.call_soon_threadsafe(_settle, line, error)
        except RuntimeError:
            # the event loop closed after the prompt was abandoned
            LOGGER.debug("confirmation answered after the prompt was abandoned")

    threading.Thread(target=_worker, name="aidd-confirm-stdin", daemon=True).start()
    return future


def fixed_answer(answer: bool) -> Confirm:
    """Build a confirm capability that always answers ``answer``."""

    async def _confirm(message: str) -> bool:  # noqa: ARG001
        return answer

    return _confirm
