"""
Build phases for the East development environment.

Per-repository sync and the install/build/test/link pipeline. Every
non-fatal problem is returned as a ``StepResult``; the orchestrator decides
what is fatal.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional

from eastdev.build.config import RepositorySpec
from eastdev.build.results import ErrorKind, Outcome, PIPELINE_STEPS, Step, StepResult
from eastdev.core.git_ops import CommandOutcome, SourceControl
from eastdev.core.utils import log, run_cmd, tail_lines


# =============================================================================
# Build Tool
# =============================================================================


class BuildTool(ABC):
    """Declared build procedure of a repository checkout."""

    @abstractmethod
    def has_build_file(self, repo_path: Path) -> bool:
        ...

    @abstractmethod
    def install(self, repo_path: Path) -> CommandOutcome:
        ...

    @abstractmethod
    def build(self, repo_path: Path) -> CommandOutcome:
        ...

    @abstractmethod
    def test(self, repo_path: Path) -> CommandOutcome:
        ...

    @abstractmethod
    def link(self, repo_path: Path, target: str) -> CommandOutcome:
        ...


# make's own "make: *** [target] Error N" and directory-change lines
_MAKE_NOISE = re.compile(r"^make(\[\d+\])?: (\*\*\*|(Entering|Leaving) directory)")


def _diagnostic(output: list[str]) -> str:
    """Pick the line that explains a make failure, skipping make's trailer."""
    lines = [line.strip() for line in output if not _MAKE_NOISE.match(line.strip())]
    errors = [line for line in lines if "error" in line.lower()]
    if errors:
        return errors[-1]
    if lines:
        return lines[-1]
    return output[-1].strip() if output else ""


class MakeBuildTool(BuildTool):
    """Runs the repository's Makefile targets.

    Output is captured; when a target fails its last ``tail`` lines are
    printed and the most relevant one becomes the step detail.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None, tail: int = 20) -> None:
        self.env = env
        self.tail = tail

    def _make(self, repo_path: Path, target: str) -> CommandOutcome:
        try:
            result = run_cmd(["make", target], cwd=repo_path, capture=True, check=False, env=self.env)
        except OSError as e:
            return CommandOutcome(ok=False, detail=str(e))
        if result.returncode != 0:
            output = tail_lines(f"{result.stdout or ''}\n{result.stderr or ''}", self.tail)
            log.error(f"make {target} failed in {repo_path.name}, last {len(output)} line(s) of output:")
            for line in output:
                log.error(f"  {line}")
            return CommandOutcome(
                ok=False,
                detail=f"make {target} exited {result.returncode}: {_diagnostic(output)}",
            )
        return CommandOutcome(ok=True)

    def has_build_file(self, repo_path: Path) -> bool:
        return (repo_path / "Makefile").is_file()

    def install(self, repo_path: Path) -> CommandOutcome:
        return self._make(repo_path, "install")

    def build(self, repo_path: Path) -> CommandOutcome:
        return self._make(repo_path, "build")

    def test(self, repo_path: Path) -> CommandOutcome:
        return self._make(repo_path, "test")

    def link(self, repo_path: Path, target: str) -> CommandOutcome:
        return self._make(repo_path, target)


# =============================================================================
# Sync
# =============================================================================


def _record(result: StepResult) -> StepResult:
    """Print a result as it happens."""
    label = f"{result.repository}: {result.step.value}"
    if result.failed:
        log.error(f"{label} failed: {result.detail}")
    elif result.skipped:
        if result.kind is None:
            log.info(f"{label} skipped: {result.detail}")
        else:
            log.warning(f"{label} skipped: {result.detail}")
    else:
        log.success(f"{label}: {result.detail}" if result.detail else label)
    return result


def sync_repository(spec: RepositorySpec, workspace_root: Path, scm: SourceControl) -> StepResult:
    """Clone a missing checkout, or fast-forward a clean one.

    Dirty or diverged checkouts are left untouched and reported as skipped.
    """
    repo_path = spec.checkout_path(workspace_root)

    def result(outcome: Outcome, detail: str, kind: Optional[ErrorKind] = None) -> StepResult:
        return _record(StepResult(spec.name, Step.SYNC, outcome, detail, kind))

    if not repo_path.exists():
        log.info(f"Cloning {spec.name}...")
        cloned = scm.clone(spec.remote_location, repo_path)
        if not cloned.ok:
            return result(Outcome.FAILED, f"clone of {spec.remote_location} failed: {cloned.detail}", ErrorKind.CLONE_FAILED)
        return result(Outcome.SUCCESS, "cloned")

    if not scm.is_clean(repo_path):
        return result(Outcome.SKIPPED, "uncommitted changes, not pulling", ErrorKind.DIRTY_WORKING_TREE)

    fetched = scm.fetch(repo_path)
    if not fetched.ok:
        return result(Outcome.SKIPPED, f"fetch failed, using local checkout: {fetched.detail}", ErrorKind.FETCH_FAILED)

    counts = scm.can_fast_forward(repo_path)
    if counts is None:
        return result(Outcome.SKIPPED, "no upstream branch, not pulling")
    if counts.diverged:
        return result(
            Outcome.SKIPPED,
            f"local and remote have diverged ({counts.ahead} ahead, {counts.behind} behind), not pulling",
            ErrorKind.DIVERGED_HISTORY,
        )
    if counts.up_to_date:
        return result(Outcome.SUCCESS, "already up to date")

    forwarded = scm.fast_forward(repo_path)
    if not forwarded.ok:
        return result(Outcome.SKIPPED, f"could not fast-forward: {forwarded.detail}", ErrorKind.DIVERGED_HISTORY)
    return result(Outcome.SUCCESS, f"fast-forwarded {counts.behind} commit(s)")


# =============================================================================
# Pipeline
# =============================================================================


def skipped_pipeline(spec: RepositorySpec, reason: str) -> list[StepResult]:
    """Skip results for every pipeline step of a repository."""
    return [_record(StepResult(spec.name, step, Outcome.SKIPPED, reason)) for step in PIPELINE_STEPS]


def process_repository(
    spec: RepositorySpec,
    workspace_root: Path,
    tool: BuildTool,
    *,
    run_tests: bool = True,
    link: bool = True,
) -> list[StepResult]:
    """Install, build, test and link one repository.

    Install failure skips everything after it; build failure skips test and
    link; test failure never stops link.
    """
    repo_path = spec.checkout_path(workspace_root)
    results: list[StepResult] = []

    def add(
        step: Step,
        outcome: Outcome,
        detail: str = "",
        kind: Optional[ErrorKind] = None,
        applicable: bool = True,
    ) -> None:
        results.append(_record(StepResult(spec.name, step, outcome, detail, kind, applicable)))

    def skip_rest(after: Step, reason: str) -> list[StepResult]:
        index = PIPELINE_STEPS.index(after)
        for step in PIPELINE_STEPS[index + 1:]:
            add(step, Outcome.SKIPPED, reason)
        return results

    if not tool.has_build_file(repo_path):
        return skipped_pipeline(spec, "no Makefile found")

    log.info(f"Building {spec.name}...")
    installed = tool.install(repo_path)
    if not installed.ok:
        add(Step.INSTALL, Outcome.FAILED, installed.detail, ErrorKind.INSTALL_FAILED)
        return skip_rest(Step.INSTALL, "install failed")
    add(Step.INSTALL, Outcome.SUCCESS)

    built = tool.build(repo_path)
    if not built.ok:
        add(Step.BUILD, Outcome.FAILED, built.detail, ErrorKind.BUILD_FAILED)
        return skip_rest(Step.BUILD, "build failed")
    add(Step.BUILD, Outcome.SUCCESS)

    if run_tests:
        tested = tool.test(repo_path)
        if tested.ok:
            add(Step.TEST, Outcome.SUCCESS, "tests passed")
        else:
            add(Step.TEST, Outcome.FAILED, f"{tested.detail} (continuing anyway)", ErrorKind.TEST_FAILED)
    else:
        add(Step.TEST, Outcome.SKIPPED, "tests disabled")

    if not link:
        add(Step.LINK, Outcome.SKIPPED, "linking disabled")
    elif spec.link_target is None:
        add(Step.LINK, Outcome.SKIPPED, "no command-line entry point", applicable=False)
    else:
        linked = tool.link(repo_path, spec.link_target)
        if linked.ok:
            add(Step.LINK, Outcome.SUCCESS, f"{spec.link_command or spec.name} CLI linked")
        else:
            add(Step.LINK, Outcome.FAILED, linked.detail, ErrorKind.LINK_FAILED)

    return results
