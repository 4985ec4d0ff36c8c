"""Command line interface for creating projects from scaffolds."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import shlex
import sys
from pathlib import Path
from typing import Sequence

from .cleanup import cleanup_project
from .config import (
    CONFIG_FILE,
    CREATE_URI_ENV,
    DEFAULT_AGENT,
    ExecutionContext,
    read_config,
    resolve_reference,
    write_config,
)
from .confirm import fixed_answer
from .create import run_create, run_verify
from .errors import (
    ScaffoldCancelledError,
    ScaffoldError,
    ScaffoldNetworkError,
    ScaffoldStepError,
    ScaffoldValidationError,
)
from .fetch import ReleaseFetcher
from .sources import parse_source

_URI_PATTERN = re.compile(r"^(https?|file)://", re.IGNORECASE)
_SETTINGS = {"create-uri": CREATE_URI_ENV}
_HINTS = {
    ScaffoldNetworkError: "Check your internet connection and try again",
    ScaffoldStepError: "Check the scaffold manifest steps and try again",
    ScaffoldValidationError: "Run `aidd-scaffold verify-scaffold` to diagnose the manifest",
}


def _resolve_create_args(type_or_folder: str | None, folder: str | None) -> tuple[str | None, str] | None:
    """Map the ``[type] <folder>`` calling convention onto two optional values.

    ``create my-app`` means folder ``my-app`` with the default scaffold. A lone
    URI almost certainly means the folder was forgotten, so it is rejected
    rather than turned into a directory name.
    """

    if not type_or_folder:
        return None
    if folder is None:
        if _URI_PATTERN.match(type_or_folder):
            return None
        return None, type_or_folder
    return type_or_folder, folder


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aidd-scaffold",
        description="Bootstrap projects from manifest-driven scaffolds",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress details to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser(
        "create",
        help="scaffold a new project",
        usage="%(prog)s [options] [type] <folder>",
        description=(
            "Create a project in <folder>. [type] is a bundled scaffold name, a "
            f"file:// URI or an https:// URL; it defaults to ${CREATE_URI_ENV}, then "
            "create-uri in the user config, then next-shadcn."
        ),
    )
    create_parser.add_argument("type_or_folder", nargs="?", metavar="type")
    create_parser.add_argument("folder", nargs="?")
    create_parser.add_argument("--agent", default=DEFAULT_AGENT, help="Agent CLI used for prompt steps")
    create_parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Download remote scaffolds without asking for confirmation",
    )

    verify_parser = subparsers.add_parser(
        "verify-scaffold", help="validate a scaffold manifest without running it"
    )
    verify_parser.add_argument("type", nargs="?", help="Scaffold name, file:// URI or https:// URL")
    verify_parser.add_argument("-y", "--yes", action="store_true", help="Skip the download confirmation")

    cleanup_parser = subparsers.add_parser(
        "scaffold-cleanup", help="remove the .aidd/ working directory left by scaffolding"
    )
    cleanup_parser.add_argument("folder", nargs="?", type=Path, default=None)

    set_parser = subparsers.add_parser(
        "set",
        help="persist a setting and print its shell export statement",
        description=f"Valid keys: {', '.join(_SETTINGS)}. The value is saved to {CONFIG_FILE}.",
    )
    set_parser.add_argument("key")
    set_parser.add_argument("value")

    return parser


def _fetcher() -> ReleaseFetcher:
    return ReleaseFetcher(token=os.environ.get("GITHUB_TOKEN"))


def _report(error: ScaffoldError) -> int:
    if isinstance(error, ScaffoldCancelledError):
        print(f"\n{error}")
        return 0

    print(f"\n{error.label}: {error}", file=sys.stderr)
    hint = _HINTS.get(type(error))
    if hint:
        print(hint, file=sys.stderr)
    if error.__cause__ is not None and not isinstance(error.__cause__, ScaffoldError):
        print(f"   Caused by: {error.__cause__}", file=sys.stderr)
    return 1


def _handle_create(args: argparse.Namespace) -> int:
    parsed = _resolve_create_args(args.type_or_folder, args.folder)
    if parsed is None:
        print("error: missing required argument 'folder'", file=sys.stderr)
        return 1

    scaffold_type, folder = parsed
    reference = resolve_reference(scaffold_type, user_config=read_config())
    context = ExecutionContext.create(folder, agent_command=args.agent)
    print(f"\nScaffolding new project in {context.target_directory}...")

    result = asyncio.run(
        run_create(
            parse_source(reference),
            context,
            confirm=fixed_answer(True) if args.yes else None,
            fetcher=_fetcher(),
        )
    )
    print("\nScaffold complete!")
    if result.cleanup is not None:
        print(result.cleanup.message)
    return 0


def _handle_verify(args: argparse.Namespace) -> int:
    reference = resolve_reference(args.type, user_config=read_config())
    context = ExecutionContext.create(Path.cwd())
    result = asyncio.run(
        run_verify(
            parse_source(reference),
            context,
            confirm=fixed_answer(True) if args.yes else None,
            fetcher=_fetcher(),
        )
    )
    if result.valid:
        print(f"Scaffold is valid ({len(result.steps)} steps)")
        return 0

    print("Scaffold validation failed:", file=sys.stderr)
    for message in result.errors:
        print(f"   - {message}", file=sys.stderr)
    return 1


def _handle_cleanup(args: argparse.Namespace) -> int:
    folder = (args.folder or Path.cwd()).expanduser().resolve()
    result = cleanup_project(folder)
    print(result.message)
    return 0


def _handle_set(args: argparse.Namespace) -> int:
    env_var = _SETTINGS.get(args.key)
    if env_var is None:
        print(
            f'Unknown setting: "{args.key}". Valid settings: {", ".join(_SETTINGS)}',
            file=sys.stderr,
        )
        return 1

    write_config({args.key: args.value})
    sys.stdout.write(f"export {env_var}={shlex.quote(args.value)}\n")
    print(f'# To apply in the current shell:\n#   eval "$(aidd-scaffold set {args.key} {args.value})"', file=sys.stderr)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    handlers = {
        "create": _handle_create,
        "verify-scaffold": _handle_verify,
        "scaffold-cleanup": _handle_cleanup,
        "set": _handle_set,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.error("no command provided")
        return 2

    try:
        return handler(args)
    except ScaffoldError as exc:
        return _report(exc)
    except OSError as exc:
        print(f"\n{args.command} failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
