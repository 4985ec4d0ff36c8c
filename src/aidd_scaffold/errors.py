"""Exception types raised while resolving and running scaffolds."""

from __future__ import annotations

__all__ = [
    "ScaffoldCancelledError",
    "ScaffoldError",
    "ScaffoldNetworkError",
    "ScaffoldStepError",
    "ScaffoldValidationError",
]


class ScaffoldError(RuntimeError):
    """Base class for every failure surfaced by the scaffold pipeline."""

    code = "SCAFFOLD_ERROR"
    label = "Scaffold failed"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ScaffoldValidationError(ScaffoldError):
    """Raised for malformed manifests, bad identifiers and rejected URIs."""

    code = "SCAFFOLD_VALIDATION_ERROR"
    label = "Invalid scaffold"


class ScaffoldNetworkError(ScaffoldError):
    """Raised when a release lookup or archive download fails."""

    code = "SCAFFOLD_NETWORK_ERROR"
    label = "Network Error"


class ScaffoldCancelledError(ScaffoldError):
    """Raised when the user declines, or cannot answer, a confirmation."""

    code = "SCAFFOLD_CANCELLED"
    label = "Cancelled"


class ScaffoldStepError(ScaffoldError):
    """Raised when a manifest step or the post hook does not succeed.

    ``exit_code`` is ``None`` when the process could not be started at all, in
    which case ``reason`` describes the launch failure.
    """

    code = "SCAFFOLD_STEP_ERROR"
    label = "Step failed"

    def __init__(
        self,
        step_index: int,
        command: str,
        exit_code: int | None,
        *,
        reason: str | None = None,
    ) -> None:
        if exit_code is None:
            outcome = f"could not be started ({reason or 'unknown error'})"
        else:
            outcome = f"exited with status {exit_code}"
        super().__init__(f"step {step_index} {outcome}: {command}")
        self.step_index = step_index
        self.command = command
        self.exit_code = exit_code
        self.reason = reason
