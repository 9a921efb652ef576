"""
Shared pytest fixtures for eastdev tests.

Provides in-memory fakes for source control, the build tool and the
toolchain so orchestration can be tested without git, make or network.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.git       - Tests that drive a real git binary
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

import pytest

from eastdev.build.config import EnvConfig, Mode, RepositorySpec
from eastdev.build.errors import ToolchainMissing
from eastdev.build.orchestrator import EnvOrchestrator
from eastdev.build.phases import BuildTool
from eastdev.build.toolchain import ToolchainState
from eastdev.core.git_ops import AheadBehind, CommandOutcome, SourceControl
from eastdev.core.utils import log


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "git: tests that need a git binary on PATH"
    )


@pytest.fixture(autouse=True)
def _plain_output() -> None:
    """Keep assertions on captured output free of ANSI codes."""
    log.set_color(False)


# =============================================================================
# Fakes
# =============================================================================


@dataclass
class FakeRepo:
    """Remote/local state of one fake checkout."""

    branch: str = "main"
    revision: str = "rev-0"
    dirty: bool = False
    ahead: int = 0
    behind: int = 0
    has_upstream: bool = True
    clone_ok: bool = True
    fetch_ok: bool = True
    ff_ok: bool = True


class FakeSourceControl(SourceControl):
    """In-memory SourceControl keyed by checkout directory name."""

    def __init__(self) -> None:
        self.repos: dict[str, FakeRepo] = {}
        self.calls: list[tuple[str, str]] = []

    def repo(self, name: str) -> FakeRepo:
        return self.repos.setdefault(name, FakeRepo())

    def clone(self, remote: str, dest: Path) -> CommandOutcome:
        self.calls.append(("clone", dest.name))
        if not self.repo(dest.name).clone_ok:
            return CommandOutcome(ok=False, detail="repository not found")
        dest.mkdir(parents=True)
        return CommandOutcome(ok=True)

    def is_clean(self, repo_path: Path) -> bool:
        self.calls.append(("is_clean", repo_path.name))
        return not self.repo(repo_path.name).dirty

    def fetch(self, repo_path: Path) -> CommandOutcome:
        self.calls.append(("fetch", repo_path.name))
        if not self.repo(repo_path.name).fetch_ok:
            return CommandOutcome(ok=False, detail="could not resolve host")
        return CommandOutcome(ok=True)

    def can_fast_forward(self, repo_path: Path) -> Optional[AheadBehind]:
        self.calls.append(("can_fast_forward", repo_path.name))
        repo = self.repo(repo_path.name)
        if not repo.has_upstream:
            return None
        return AheadBehind(ahead=repo.ahead, behind=repo.behind)

    def fast_forward(self, repo_path: Path) -> CommandOutcome:
        self.calls.append(("fast_forward", repo_path.name))
        repo = self.repo(repo_path.name)
        if not repo.ff_ok:
            return CommandOutcome(ok=False, detail="Not possible to fast-forward")
        repo.revision = f"rev-{int(repo.revision.split('-')[1]) + repo.behind}"
        repo.behind = 0
        return CommandOutcome(ok=True)

    def current_branch(self, repo_path: Path) -> str:
        return self.repo(repo_path.name).branch

    def current_revision(self, repo_path: Path) -> str:
        return self.repo(repo_path.name).revision

    def mutating_calls(self, name: str) -> list[str]:
        return [op for op, repo in self.calls if repo == name and op in ("clone", "fast_forward")]


class FakeBuildTool(BuildTool):
    """Records make-style steps and fails the ones listed in ``failures``."""

    def __init__(
        self,
        failures: Sequence[tuple[str, str]] = (),
        no_makefile: Sequence[str] = (),
    ) -> None:
        self.failures = set(failures)
        self.no_makefile = set(no_makefile)
        self.calls: list[tuple[str, str]] = []

    def _step(self, repo_path: Path, step: str) -> CommandOutcome:
        self.calls.append((repo_path.name, step))
        if (repo_path.name, step) in self.failures:
            return CommandOutcome(ok=False, detail=f"make {step} exited 2")
        return CommandOutcome(ok=True)

    def has_build_file(self, repo_path: Path) -> bool:
        return repo_path.name not in self.no_makefile

    def install(self, repo_path: Path) -> CommandOutcome:
        return self._step(repo_path, "install")

    def build(self, repo_path: Path) -> CommandOutcome:
        return self._step(repo_path, "build")

    def test(self, repo_path: Path) -> CommandOutcome:
        return self._step(repo_path, "test")

    def link(self, repo_path: Path, target: str) -> CommandOutcome:
        return self._step(repo_path, "link")

    def steps_for(self, name: str) -> list[str]:
        return [step for repo, step in self.calls if repo == name]


class FakeToolchain:
    """Toolchain stand-in; ``fail`` makes ensure() raise ToolchainMissing."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.ensure_calls = 0

    def ensure(self) -> ToolchainState:
        self.ensure_calls += 1
        if self.fail:
            raise ToolchainMissing("nvm installation failed (exit 1)")
        return ToolchainState(version_manager=True, package_manager=True, runtime_version="22")

    def runtime_env(self) -> dict[str, str]:
        return {"PATH": ""}


# =============================================================================
# Fixtures
# =============================================================================


def make_spec(name: str, *deps: str, link: Optional[str] = None) -> RepositorySpec:
    return RepositorySpec(
        name=name,
        remote_location=f"https://example.invalid/{name}.git",
        depends_on=tuple(deps),
        link_target=link,
        link_command=name if link else None,
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "east"
    root.mkdir()
    return root


@pytest.fixture
def scm() -> FakeSourceControl:
    return FakeSourceControl()


@pytest.fixture
def build_tool() -> FakeBuildTool:
    return FakeBuildTool()


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def make_orchestrator(
    workspace: Path,
    scm: FakeSourceControl,
    build_tool: FakeBuildTool,
    toolchain: FakeToolchain,
) -> Callable[..., EnvOrchestrator]:
    """Factory for orchestrators wired to the shared fakes."""

    def _make(
        mode: Mode = Mode.REFRESH,
        registry: Optional[Sequence[RepositorySpec]] = None,
        root: Optional[Path] = None,
        **config_kwargs,
    ) -> EnvOrchestrator:
        config = EnvConfig.for_mode(mode, root or workspace, **config_kwargs)
        return EnvOrchestrator(
            config,
            registry=registry,
            source_control=scm,
            build_tool=build_tool,
            toolchain=toolchain,
        )

    return _make
