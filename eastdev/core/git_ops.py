"""
Git operations for the East workspace.

Working-tree inspection and update primitives behind a small
``SourceControl`` interface, so orchestration can run against a fake.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from eastdev.core.utils import last_line, run_cmd


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class CommandOutcome:
    """Exit status of an external command plus a one-line detail."""

    ok: bool
    detail: str = ""

    @classmethod
    def from_process(cls, result: subprocess.CompletedProcess) -> "CommandOutcome":
        detail = last_line(result.stderr) or last_line(result.stdout)
        return cls(ok=result.returncode == 0, detail=detail)


@dataclass(frozen=True)
class AheadBehind:
    """Commit counts of HEAD relative to its upstream."""

    ahead: int
    behind: int

    @property
    def diverged(self) -> bool:
        return self.ahead > 0 and self.behind > 0

    @property
    def up_to_date(self) -> bool:
        return self.behind == 0


# =============================================================================
# Interface
# =============================================================================


class SourceControl(ABC):
    """Version-control capabilities the synchronizer relies on."""

    @abstractmethod
    def clone(self, remote: str, dest: Path) -> CommandOutcome:
        """Clone ``remote`` into ``dest``."""

    @abstractmethod
    def is_clean(self, repo_path: Path) -> bool:
        """True when there are no staged or unstaged changes to tracked files."""

    @abstractmethod
    def fetch(self, repo_path: Path) -> CommandOutcome:
        """Fetch the upstream remote without touching the working tree."""

    @abstractmethod
    def can_fast_forward(self, repo_path: Path) -> Optional[AheadBehind]:
        """Ahead/behind counts against upstream, or None without an upstream."""

    @abstractmethod
    def fast_forward(self, repo_path: Path) -> CommandOutcome:
        """Advance the current branch to its upstream, fast-forward only."""

    @abstractmethod
    def current_branch(self, repo_path: Path) -> str:
        ...

    @abstractmethod
    def current_revision(self, repo_path: Path) -> str:
        ...


# =============================================================================
# Git Implementation
# =============================================================================


class GitSourceControl(SourceControl):
    """SourceControl backed by the ``git`` command line."""

    def _git(self, repo_path: Path, *args: str) -> subprocess.CompletedProcess:
        return run_cmd(["git", *args], cwd=repo_path, capture=True, check=False)

    def clone(self, remote: str, dest: Path) -> CommandOutcome:
        result = run_cmd(
            ["git", "clone", remote, str(dest)],
            cwd=dest.parent,
            capture=True,
            check=False,
        )
        return CommandOutcome.from_process(result)

    def is_clean(self, repo_path: Path) -> bool:
        result = self._git(repo_path, "status", "--porcelain", "--untracked-files=no")
        if result.returncode != 0:
            # Unreadable status is treated as dirty so nothing gets overwritten
            return False
        return not result.stdout.strip()

    def fetch(self, repo_path: Path) -> CommandOutcome:
        return CommandOutcome.from_process(self._git(repo_path, "fetch", "origin"))

    def can_fast_forward(self, repo_path: Path) -> Optional[AheadBehind]:
        result = self._git(repo_path, "rev-list", "--left-right", "--count", "HEAD...@{u}")
        if result.returncode != 0:
            return None
        parts = result.stdout.strip().split()
        if len(parts) != 2:
            return None
        return AheadBehind(ahead=int(parts[0]), behind=int(parts[1]))

    def fast_forward(self, repo_path: Path) -> CommandOutcome:
        return CommandOutcome.from_process(self._git(repo_path, "merge", "--ff-only", "@{u}"))

    def current_branch(self, repo_path: Path) -> str:
        result = self._git(repo_path, "rev-parse", "--abbrev-ref", "HEAD")
        if result.returncode != 0:
            return "unknown"
        return result.stdout.strip()

    def current_revision(self, repo_path: Path) -> str:
        result = self._git(repo_path, "rev-parse", "--short=12", "HEAD")
        if result.returncode != 0:
            return "unknown"
        return result.stdout.strip()
