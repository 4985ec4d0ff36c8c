"""Parsing and validation of ``SCAFFOLD-MANIFEST.yml`` documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

from .errors import ScaffoldValidationError

__all__ = [
    "MANIFEST_FILENAME",
    "PromptStep",
    "RunStep",
    "Step",
    "VerificationResult",
    "load_manifest",
    "parse_manifest",
    "verify_scaffold",
]


MANIFEST_FILENAME = "SCAFFOLD-MANIFEST.yml"
_STEP_KEYS = ("run", "prompt")


class RunStep(BaseModel):
    """Shell command executed in the target directory."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    command: str = Field(..., min_length=1, description="Shell command to execute.")

    def describe(self) -> str:
        return self.command


class PromptStep(BaseModel):
    """Instruction handed to the configured AI agent command."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    text: str = Field(..., min_length=1, description="Prompt passed to the agent as one argument.")

    def describe(self) -> str:
        return self.text


Step = Union[RunStep, PromptStep]


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, dict):
        return "mapping"
    if isinstance(value, list):
        return "sequence"
    return type(value).__name__


def _parse_step(index: int, entry: Any) -> Step:
    if not isinstance(entry, dict):
        raise ScaffoldValidationError(
            f"manifest step {index} must be a mapping with a 'run' or 'prompt' key, "
            f"got {_type_name(entry)}"
        )

    present = [key for key in _STEP_KEYS if key in entry]
    if not present:
        found = ", ".join(repr(str(key)) for key in entry) or "none"
        raise ScaffoldValidationError(
            f"manifest step {index} must have exactly one of 'run' or 'prompt'; "
            f"found keys: {found}"
        )
    if len(present) > 1:
        raise ScaffoldValidationError(
            f"manifest step {index} is ambiguous: it has both 'run' and 'prompt' keys"
        )

    key = present[0]
    value = entry[key]
    if not isinstance(value, str) or not value.strip():
        raise ScaffoldValidationError(
            f"manifest step {index} '{key}' must be a non-empty string, got {_type_name(value)}"
        )

    if key == "run":
        return RunStep(command=value)
    return PromptStep(text=value)


def parse_manifest(text: str) -> tuple[Step, ...]:
    """Parse manifest ``text`` into an ordered tuple of steps.

    Only plain YAML scalars, sequences and mappings are accepted: the document
    is read with the safe loader, so tags that would construct Python objects
    fail instead of producing unexpected values.

    Raises
    ------
    ScaffoldValidationError
        When the document is not valid YAML or does not have the shape
        ``{"steps": [{"run": ...} | {"prompt": ...}, ...]}``.
    """

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ScaffoldValidationError(f"manifest is not valid YAML: {exc}") from exc

    if not isinstance(document, dict) or "steps" not in document:
        raise ScaffoldValidationError(
            "manifest must be a mapping with a 'steps' key holding a sequence, "
            f"got {_type_name(document)}"
        )

    raw_steps = document["steps"]
    if raw_steps is None:
        return ()
    if not isinstance(raw_steps, list):
        raise ScaffoldValidationError(
            f"manifest 'steps' must be a sequence, got {_type_name(raw_steps)}"
        )

    return tuple(_parse_step(index, entry) for index, entry in enumerate(raw_steps, start=1))


def load_manifest(path: Path) -> tuple[Step, ...]:
    """Read and parse the manifest stored at ``path``."""

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ScaffoldValidationError(f"{MANIFEST_FILENAME} not found at {path}") from exc
    return parse_manifest(text)


@dataclass(slots=True)
class VerificationResult:
    """Outcome of :func:`verify_scaffold`; ``errors`` is empty when valid."""

    errors: list[str] = field(default_factory=list)
    steps: tuple[Step, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors


def verify_scaffold(manifest_path: Path, post_hook_path: Path | None = None) -> VerificationResult:
    """Check a scaffold's manifest without executing anything.

    Problems are collected rather than raised so the caller can report them
    together. A manifest with no steps is only acceptable when a post hook
    script exists, since otherwise the scaffold would do nothing.
    """

    result = VerificationResult()
    if not manifest_path.is_file():
        result.errors.append(f"{MANIFEST_FILENAME} not found at {manifest_path}")
        return result

    try:
        result.steps = load_manifest(manifest_path)
    except ScaffoldValidationError as exc:
        result.errors.append(f"Invalid manifest: {exc}")
        return result

    if not result.steps and (post_hook_path is None or not post_hook_path.is_file()):
        result.errors.append("Manifest contains no steps, so the scaffold would do nothing")

    return result
