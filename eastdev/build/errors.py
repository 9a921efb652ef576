"""
Exceptions raised by the environment orchestrator.

Only fatal conditions are exceptions; everything else is recorded as a
``StepResult`` and the run continues.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from eastdev.build.results import StepResult


class OrchestratorError(RuntimeError):
    """Base class for errors that end an orchestrator run."""


class RegistryError(OrchestratorError):
    """Raised when a repository registry has an unknown dependency or a cycle."""


class ToolchainMissing(OrchestratorError):
    """A required host command or toolchain component is unavailable."""


class WorkspaceMissing(OrchestratorError):
    """Refresh was requested but the workspace root does not exist."""


class FatalStepError(OrchestratorError):
    """A repository step failed under a policy that aborts the run."""

    def __init__(self, result: "StepResult") -> None:
        self.result = result
        super().__init__(f"{result.repository}: {result.step.value} failed: {result.detail}")


class CloneFailed(FatalStepError):
    pass


class InstallFailed(FatalStepError):
    pass
