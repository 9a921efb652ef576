"""
eastdev.build - Environment orchestration for the East workspace.

Provides dependency-ordered clone, sync, build, test and link of the
East repositories, with a toolchain bootstrapper and a status report.
"""

from eastdev.build.config import (
    REGISTRY,
    EnvConfig,
    FailurePolicy,
    Mode,
    RepositorySpec,
    list_repositories_in_order,
)
from eastdev.build.errors import (
    CloneFailed,
    FatalStepError,
    InstallFailed,
    OrchestratorError,
    RegistryError,
    ToolchainMissing,
    WorkspaceMissing,
)
from eastdev.build.orchestrator import EnvOrchestrator
from eastdev.build.phases import BuildTool, MakeBuildTool, process_repository, sync_repository
from eastdev.build.report import render_report
from eastdev.build.results import (
    ErrorKind,
    Outcome,
    RepositoryState,
    Step,
    StepResult,
)
from eastdev.build.toolchain import Toolchain, ToolchainState, ensure_toolchain

__all__ = [
    # Registry and configuration
    "REGISTRY",
    "EnvConfig",
    "FailurePolicy",
    "Mode",
    "RepositorySpec",
    "list_repositories_in_order",
    # Errors
    "CloneFailed",
    "FatalStepError",
    "InstallFailed",
    "OrchestratorError",
    "RegistryError",
    "ToolchainMissing",
    "WorkspaceMissing",
    # Orchestration
    "EnvOrchestrator",
    "BuildTool",
    "MakeBuildTool",
    "process_repository",
    "sync_repository",
    "render_report",
    # Results
    "ErrorKind",
    "Outcome",
    "RepositoryState",
    "Step",
    "StepResult",
    # Toolchain
    "Toolchain",
    "ToolchainState",
    "ensure_toolchain",
]
