"""
Step and repository result types collected during one orchestrator run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from eastdev.build.config import RepositorySpec


class Step(str, Enum):
    SYNC = "sync"
    INSTALL = "install"
    BUILD = "build"
    TEST = "test"
    LINK = "link"


# Pipeline steps in execution order (sync is handled separately)
PIPELINE_STEPS = (Step.INSTALL, Step.BUILD, Step.TEST, Step.LINK)


class Outcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {Outcome.SUCCESS: 0, Outcome.SKIPPED: 1, Outcome.FAILED: 2}


class ErrorKind(str, Enum):
    """Failure and skip taxonomy attached to step results."""

    TOOLCHAIN_MISSING = "toolchain-missing"
    WORKSPACE_MISSING = "workspace-missing"
    CLONE_FAILED = "clone-failed"
    DIRTY_WORKING_TREE = "dirty-working-tree"
    DIVERGED_HISTORY = "diverged-history"
    FETCH_FAILED = "fetch-failed"
    INSTALL_FAILED = "install-failed"
    BUILD_FAILED = "build-failed"
    TEST_FAILED = "test-failed"
    LINK_FAILED = "link-failed"


@dataclass(frozen=True)
class StepResult:
    """Outcome of one step for one repository."""

    repository: str
    step: Step
    outcome: Outcome
    detail: str = ""
    kind: Optional[ErrorKind] = None
    # False for steps that do not exist for this repository (e.g. no CLI to link)
    applicable: bool = True

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED

    @property
    def skipped(self) -> bool:
        return self.outcome is Outcome.SKIPPED


@dataclass(frozen=True)
class RepositoryState:
    """Checkout state, recomputed from disk on every run."""

    spec: RepositorySpec
    present: bool
    working_tree_clean: bool = True
    current_branch: str = "-"
    current_revision: str = "-"

    @property
    def name(self) -> str:
        return self.spec.name


def worst_outcome(results: Iterable[StepResult]) -> Optional[Outcome]:
    """Most severe outcome among applicable results (failed > skipped > success)."""
    worst: Optional[Outcome] = None
    for result in results:
        if not result.applicable:
            continue
        if worst is None or result.outcome.severity > worst.severity:
            worst = result.outcome
    return worst
