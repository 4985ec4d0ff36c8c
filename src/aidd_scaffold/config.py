"""Configuration shared by the resolver, the runner and the CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ScaffoldValidationError

__all__ = [
    "AIDD_HOME",
    "CONFIG_FILE",
    "CREATE_URI_ENV",
    "DEFAULT_AGENT",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_SCAFFOLD",
    "ExecutionContext",
    "UserConfig",
    "read_config",
    "resolve_reference",
    "write_config",
]


AIDD_HOME = Path.home() / ".aidd"
CONFIG_FILE = AIDD_HOME / "config.yml"
DEFAULT_CACHE_DIR = AIDD_HOME / "cache"
DEFAULT_SCAFFOLD = "next-shadcn"
DEFAULT_AGENT = "claude"
CREATE_URI_ENV = "AIDD_CUSTOM_CREATE_URI"


class UserConfig(BaseModel):
    """Persisted user defaults stored in ``~/.aidd/config.yml``."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    create_uri: str | None = Field(
        None,
        alias="create-uri",
        description="Scaffold reference used when none is given explicitly.",
    )


def read_config(config_file: Path | None = None) -> UserConfig:
    """Load the user configuration, returning defaults when the file is absent."""

    config_file = config_file if config_file is not None else CONFIG_FILE
    if not config_file.is_file():
        return UserConfig()

    try:
        raw = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ScaffoldValidationError(f"invalid YAML in {config_file}: {exc}") from exc

    if raw is None:
        return UserConfig()
    if not isinstance(raw, dict):
        raise ScaffoldValidationError(f"{config_file} must contain a mapping")
    try:
        return UserConfig.model_validate(raw)
    except ValidationError as exc:
        raise ScaffoldValidationError(f"invalid settings in {config_file}: {exc}") from exc


def write_config(updates: Mapping[str, Any], config_file: Path | None = None) -> UserConfig:
    """Merge ``updates`` into the stored configuration and write it back."""

    config_file = config_file if config_file is not None else CONFIG_FILE
    existing = read_config(config_file).model_dump(by_alias=True, exclude_none=True)
    merged = UserConfig.model_validate({**existing, **updates})

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        yaml.safe_dump(merged.model_dump(by_alias=True, exclude_none=True), sort_keys=False),
        encoding="utf-8",
    )
    return merged


def resolve_reference(
    explicit: str | None,
    *,
    environ: Mapping[str, str] | None = None,
    user_config: UserConfig | None = None,
) -> str:
    """Pick the scaffold reference to use for this invocation.

    An explicit argument wins over ``AIDD_CUSTOM_CREATE_URI``, which wins over
    ``create-uri`` from the user configuration, which wins over the bundled
    default scaffold.
    """

    environ = os.environ if environ is None else environ
    candidates = (
        explicit,
        environ.get(CREATE_URI_ENV),
        user_config.create_uri if user_config is not None else None,
    )
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return DEFAULT_SCAFFOLD


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Everything a single scaffold invocation needs to know about its environment.

    Attributes
    ----------
    target_directory:
        Absolute path of the project being created. It may not exist yet.
    agent_command:
        Executable invoked for ``prompt`` steps, e.g. ``claude``.
    cache_directory:
        User level directory used to stage remote scaffolds when the target
        directory does not exist yet.
    """

    target_directory: Path
    agent_command: str = DEFAULT_AGENT
    cache_directory: Path = DEFAULT_CACHE_DIR

    @classmethod
    def create(
        cls,
        target_directory: str | Path,
        *,
        agent_command: str | None = None,
        cache_directory: str | Path | None = None,
    ) -> "ExecutionContext":
        """Build a context with absolute, user-expanded paths."""

        agent = (agent_command or DEFAULT_AGENT).strip()
        if not agent:
            raise ScaffoldValidationError("agent command must not be empty; pass --agent with a program name")

        cache = Path(cache_directory) if cache_directory is not None else DEFAULT_CACHE_DIR
        return cls(
            target_directory=Path(target_directory).expanduser().resolve(),
            agent_command=agent,
            cache_directory=cache.expanduser().resolve(),
        )
