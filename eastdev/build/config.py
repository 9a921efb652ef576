"""
Build configuration for the East development environment.

Repository registry, run modes, and the per-run configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from eastdev.build.errors import RegistryError
from eastdev.core.utils import GITHUB_ORG_URL

__all__ = [
    "RepositorySpec",
    "REGISTRY",
    "list_repositories_in_order",
    "Mode",
    "FailurePolicy",
    "EnvConfig",
]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RepositorySpec:
    """A repository in the workspace and the repositories it builds against."""

    name: str
    remote_location: str
    depends_on: tuple[str, ...] = ()
    link_target: Optional[str] = None  # make target that exposes the CLI
    link_command: Optional[str] = None  # command name available after linking

    def checkout_path(self, workspace_root: Path) -> Path:
        return workspace_root / self.name


def _github(name: str) -> str:
    return f"{GITHUB_ORG_URL}/{name}.git"


# =============================================================================
# Registry
# =============================================================================

# Declaration order breaks ties in the topological sort
REGISTRY: tuple[RepositorySpec, ...] = (
    RepositorySpec("east", _github("east")),
    RepositorySpec(
        "east-node",
        _github("east-node"),
        depends_on=("east",),
        link_target="link-cli",
        link_command="east-node",
    ),
    # east-py needs east-node for its test IR
    RepositorySpec(
        "east-py",
        _github("east-py"),
        depends_on=("east-node",),
        link_target="install-cli",
        link_command="east-py",
    ),
    RepositorySpec("east-ui", _github("east-ui"), depends_on=("east",)),
    RepositorySpec(
        "e3",
        _github("e3"),
        depends_on=("east", "east-node", "east-py"),
        link_target="link",
        link_command="e3",
    ),
)


def list_repositories_in_order(
    registry: Optional[Sequence[RepositorySpec]] = None,
) -> list[RepositorySpec]:
    """Return the registry in dependency order.

    Each repository comes after everything it depends on; among repositories
    that are ready at the same time, declaration order wins.

    Raises:
        RegistryError: duplicate names, unknown dependencies, or a cycle.
    """
    specs = list(REGISTRY if registry is None else registry)
    names = [spec.name for spec in specs]
    if len(set(names)) != len(names):
        raise RegistryError(f"Duplicate repository names in registry: {names}")

    known = set(names)
    for spec in specs:
        unknown = [dep for dep in spec.depends_on if dep not in known]
        if unknown:
            raise RegistryError(f"{spec.name} depends on unknown repositories: {', '.join(unknown)}")

    ordered: list[RepositorySpec] = []
    placed: set[str] = set()
    remaining = list(specs)
    while remaining:
        ready = next(
            (spec for spec in remaining if all(dep in placed for dep in spec.depends_on)),
            None,
        )
        if ready is None:
            cycle = ", ".join(spec.name for spec in remaining)
            raise RegistryError(f"Dependency cycle among: {cycle}")
        ordered.append(ready)
        placed.add(ready.name)
        remaining.remove(ready)
    return ordered


# =============================================================================
# Run Configuration
# =============================================================================


class Mode(str, Enum):
    BOOTSTRAP = "bootstrap"
    REFRESH = "refresh"


@dataclass(frozen=True)
class FailurePolicy:
    """Whether a clone or install failure ends the whole run."""

    abort_on_first_failure: bool = False

    @classmethod
    def for_mode(cls, mode: Mode) -> "FailurePolicy":
        return cls(abort_on_first_failure=mode is Mode.BOOTSTRAP)


@dataclass
class EnvConfig:
    """Configuration for one orchestrator run."""

    mode: Mode
    workspace_root: Path
    policy: FailurePolicy = field(default_factory=FailurePolicy)
    assume_yes: bool = False
    run_tests: bool = True
    link: bool = True
    verbose: bool = False

    @classmethod
    def for_mode(cls, mode: Mode, workspace_root: Path, **kwargs) -> "EnvConfig":
        return cls(
            mode=mode,
            workspace_root=workspace_root,
            policy=FailurePolicy.for_mode(mode),
            **kwargs,
        )
