"""Bootstrap new projects from declarative scaffolds.

A scaffold is a small bundle made of a ``README.md`` description, a
``SCAFFOLD-MANIFEST.yml`` listing ordered ``run``/``prompt`` steps and an
optional ``bin/extension.py`` post hook. Scaffolds can be bundled with the
package, live in a local directory or be published as releases of a git
hosted repository; remote ones are only downloaded after explicit
confirmation and are removed again once the invocation finishes.
"""

from __future__ import annotations

from .cleanup import CleanupResult, cleanup, cleanup_project
from .config import ExecutionContext, UserConfig, read_config, resolve_reference, write_config
from .confirm import fixed_answer, prompt_confirm
from .create import CreateResult, run_create, run_verify
from .errors import (
    ScaffoldCancelledError,
    ScaffoldError,
    ScaffoldNetworkError,
    ScaffoldStepError,
    ScaffoldValidationError,
)
from .fetch import ReleaseFetcher
from .manifest import PromptStep, RunStep, Step, VerificationResult, parse_manifest, verify_scaffold
from .resolver import ResolvedScaffold, resolve
from .runner import StepExecutor, SubprocessExecutor, execute_steps
from .sources import LocalSource, NamedSource, RemoteSource, ScaffoldSource, parse_source

__all__ = [
    "CleanupResult",
    "CreateResult",
    "ExecutionContext",
    "LocalSource",
    "NamedSource",
    "PromptStep",
    "ReleaseFetcher",
    "RemoteSource",
    "ResolvedScaffold",
    "RunStep",
    "ScaffoldCancelledError",
    "ScaffoldError",
    "ScaffoldNetworkError",
    "ScaffoldSource",
    "ScaffoldStepError",
    "ScaffoldValidationError",
    "Step",
    "StepExecutor",
    "SubprocessExecutor",
    "UserConfig",
    "VerificationResult",
    "cleanup",
    "cleanup_project",
    "execute_steps",
    "fixed_answer",
    "parse_manifest",
    "parse_source",
    "prompt_confirm",
    "read_config",
    "resolve",
    "resolve_reference",
    "run_create",
    "run_verify",
    "verify_scaffold",
    "write_config",
]

__version__ = "0.1.0"
