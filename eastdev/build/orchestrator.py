"""
Environment orchestrator for the East development workspace.

Walks the repository registry in dependency order, syncing and then
building each repository before moving on to the next one.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from eastdev.build.config import (
    EnvConfig,
    Mode,
    RepositorySpec,
    list_repositories_in_order,
)
from eastdev.build.errors import (
    CloneFailed,
    InstallFailed,
    OrchestratorError,
    WorkspaceMissing,
)
from eastdev.build.phases import (
    BuildTool,
    MakeBuildTool,
    process_repository,
    skipped_pipeline,
    sync_repository,
)
from eastdev.build.report import render_report
from eastdev.build.results import RepositoryState, Step, StepResult
from eastdev.build.toolchain import Toolchain, ensure_toolchain
from eastdev.core.git_ops import GitSourceControl, SourceControl
from eastdev.core.timing import RunTimer, format_duration
from eastdev.core.utils import get_workspace_root, has_command, log


# Failures that end the run when the policy aborts on first failure
_FATAL_STEPS = {Step.SYNC: CloneFailed, Step.INSTALL: InstallFailed}


# =============================================================================
# Environment Orchestrator
# =============================================================================


class EnvOrchestrator:
    """Orchestrates the multi-repo bootstrap and refresh process."""

    def __init__(
        self,
        config: EnvConfig,
        *,
        registry: Optional[Sequence[RepositorySpec]] = None,
        source_control: Optional[SourceControl] = None,
        build_tool: Optional[BuildTool] = None,
        toolchain: Optional[Toolchain] = None,
    ):
        self.config = config
        self.repositories = list_repositories_in_order(registry)
        self.scm = source_control or GitSourceControl()
        self.toolchain = toolchain or Toolchain()
        self._build_tool = build_tool

        self.results: list[StepResult] = []
        self.timer = RunTimer()

    @property
    def workspace_root(self) -> Path:
        return self.config.workspace_root

    @property
    def build_tool(self) -> BuildTool:
        # Built lazily so it picks up the runtime selected by the toolchain
        if self._build_tool is None:
            self._build_tool = MakeBuildTool(env=self.toolchain.runtime_env())
        return self._build_tool

    # -------------------------------------------------------------------------
    # Workspace
    # -------------------------------------------------------------------------

    def prepare_workspace(self) -> None:
        """Create the workspace root for bootstrap; require it for refresh."""
        root = self.workspace_root
        if root.is_dir():
            return
        if self.config.mode is not Mode.BOOTSTRAP:
            raise WorkspaceMissing(
                f"East directory not found: {root}. "
                f"Run 'eastdev bootstrap' first to set up the development environment."
            )
        log.info(f"Creating workspace at {root}")
        root.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Per-repository steps
    # -------------------------------------------------------------------------

    def sync(self, spec: RepositorySpec) -> StepResult:
        result = sync_repository(spec, self.workspace_root, self.scm)
        self.results.append(result)
        return result

    def process(self, spec: RepositorySpec) -> list[StepResult]:
        results = process_repository(
            spec,
            self.workspace_root,
            self.build_tool,
            run_tests=self.config.run_tests,
            link=self.config.link,
        )
        self.results.extend(results)
        return results

    def inspect(self, spec: RepositorySpec) -> RepositoryState:
        """Read the current checkout state from disk."""
        repo_path = spec.checkout_path(self.workspace_root)
        if not repo_path.is_dir():
            return RepositoryState(spec=spec, present=False)
        return RepositoryState(
            spec=spec,
            present=True,
            working_tree_clean=self.scm.is_clean(repo_path),
            current_branch=self.scm.current_branch(repo_path),
            current_revision=self.scm.current_revision(repo_path),
        )

    def collect_states(self) -> list[RepositoryState]:
        return [self.inspect(spec) for spec in self.repositories]

    def _check_fatal(self, result: StepResult) -> None:
        if not (result.failed and self.config.policy.abort_on_first_failure):
            return
        error_cls = _FATAL_STEPS.get(result.step)
        if error_cls is not None:
            raise error_cls(result)

    def process_all(self) -> None:
        """Sync then build every repository, strictly in registry order."""
        for spec in self.repositories:
            log.header(spec.name)
            with self.timer.repository(spec.name):
                sync_result = self.sync(spec)
                self._check_fatal(sync_result)
                if sync_result.failed:
                    self.results.extend(skipped_pipeline(spec, "sync failed"))
                    continue

                for result in self.process(spec):
                    self._check_fatal(result)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def print_report(self) -> None:
        log.header("Summary")
        print(render_report(self.results, self.collect_states(), self.timer.repositories))

    def print_available_commands(self) -> None:
        """Check which linked CLIs can now be invoked by name."""
        if not self.config.link:
            return
        commands = [spec.link_command for spec in self.repositories if spec.link_command]
        if not commands:
            return

        log.header("Available commands")
        path = self.toolchain.runtime_env().get("PATH")
        for command in commands:
            if has_command(command, path=path):
                log.success(command)
            else:
                log.warning(f"{command} not found in PATH (restart your shell or source nvm)")

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run(self) -> int:
        """Run bootstrap or refresh. Fatal errors propagate to the caller."""
        self.timer = RunTimer()
        title = "Setup" if self.config.mode is Mode.BOOTSTRAP else "Update"
        log.header(f"East Development Environment {title}")

        self.prepare_workspace()

        log.header("Toolchain")
        ensure_toolchain(self.toolchain)

        try:
            self.process_all()
        finally:
            if self.results:
                self.print_report()

        self.print_available_commands()

        log.info(f"Repositories in: {self.workspace_root}")
        log.info(f"Total time: {format_duration(self.timer.total)}")
        slowest = self.timer.slowest()
        if self.config.verbose and slowest is not None:
            log.dim(f"Slowest: {slowest} ({format_duration(self.timer.repositories[slowest])})")
        return 0

    def status(self) -> int:
        """Report every checkout without syncing or building."""
        if not self.workspace_root.is_dir():
            raise WorkspaceMissing(f"East directory not found: {self.workspace_root}")
        log.header("Repository status")
        print(render_report([], self.collect_states()))
        return 0


# =============================================================================
# CLI Entry Points
# =============================================================================


def _make_orchestrator(config: EnvConfig) -> EnvOrchestrator:
    return EnvOrchestrator(config)


def _config_from_args(args: argparse.Namespace, mode: Mode) -> EnvConfig:
    return EnvConfig.for_mode(
        mode,
        get_workspace_root(getattr(args, "workspace", None)),
        assume_yes=getattr(args, "yes", False),
        run_tests=not getattr(args, "skip_tests", False),
        link=not getattr(args, "skip_link", False),
        verbose=getattr(args, "verbose", False),
    )


def confirm(prompt: str, assume_yes: bool = False) -> bool:
    """Ask a yes/no question; non-interactive runs proceed."""
    if assume_yes or not sys.stdin.isatty():
        return True
    try:
        reply = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return reply.strip().lower() in ("y", "yes")


def _run_guarded(config: EnvConfig, action: str) -> int:
    try:
        orchestrator = _make_orchestrator(config)
        return getattr(orchestrator, action)()
    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    except OrchestratorError as e:
        log.error(str(e))
        return 1
    except OSError as e:
        log.error(f"{type(e).__name__}: {e}")
        return 1


def cmd_bootstrap(args: argparse.Namespace) -> int:
    """Main entry point for the bootstrap command."""
    config = _config_from_args(args, Mode.BOOTSTRAP)

    log.info("This will:")
    log.info("  - Install nvm (Node Version Manager) if not present")
    log.info("  - Install uv (Python package manager) if not present")
    log.info(f"  - Clone all East repositories to {config.workspace_root}")
    log.info("  - Build, test and link all repositories")
    if not confirm("Continue?", config.assume_yes):
        log.info("Aborted.")
        return 0

    return _run_guarded(config, "run")


def cmd_refresh(args: argparse.Namespace) -> int:
    """Main entry point for the refresh command."""
    return _run_guarded(_config_from_args(args, Mode.REFRESH), "run")


def cmd_status(args: argparse.Namespace) -> int:
    """Main entry point for the status command."""
    return _run_guarded(_config_from_args(args, Mode.REFRESH), "status")


def cmd_repos(args: argparse.Namespace) -> int:
    """Print the registry in build order."""
    log.header("Repositories (build order)")
    for index, spec in enumerate(list_repositories_in_order(), start=1):
        deps = ", ".join(spec.depends_on) if spec.depends_on else "-"
        cli = f"  [cli: {spec.link_command}]" if spec.link_command else ""
        print(f"  {index}. {spec.name:<12} depends on: {deps}{cli}")
    return 0
