"""
Tests for GitSourceControl against real git repositories.

Each test builds a bare "remote" plus a seed clone that publishes commits,
so fetch and fast-forward behave exactly as they do against GitHub.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from eastdev.build.phases import sync_repository
from eastdev.build.results import ErrorKind, Outcome
from eastdev.core.git_ops import GitSourceControl
from eastdev.tests.pytest.conftest import make_spec

pytestmark = [
    pytest.mark.git,
    pytest.mark.skipif(shutil.which("git") is None, reason="git not installed"),
]


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout.strip()


def commit(repo: Path, name: str, content: str) -> None:
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", f"update {name}")


@pytest.fixture(autouse=True)
def _isolated_git(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for prefix in ("GIT_AUTHOR", "GIT_COMMITTER"):
        monkeypatch.setenv(f"{prefix}_NAME", "East Dev")
        monkeypatch.setenv(f"{prefix}_EMAIL", "dev@example.invalid")


@pytest.fixture
def remote(tmp_path: Path) -> Path:
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", "-b", "main", str(remote))
    return remote


@pytest.fixture
def seed(tmp_path: Path, remote: Path) -> Path:
    """Working clone used to publish upstream commits."""
    seed = tmp_path / "seed"
    git(tmp_path, "clone", "-q", str(remote), str(seed))
    git(seed, "checkout", "-q", "-B", "main")
    commit(seed, "README.md", "east\n")
    git(seed, "push", "-q", "-u", "origin", "main")
    return seed


@pytest.fixture
def scm() -> GitSourceControl:
    return GitSourceControl()


@pytest.fixture
def checkout(workspace: Path, remote: Path, seed: Path, scm: GitSourceControl) -> Path:
    dest = workspace / "east"
    assert scm.clone(str(remote), dest).ok
    return dest


class TestGitSourceControl:
    """Inspection and update primitives."""

    def test_clone_and_inspect(self, checkout: Path, seed: Path, scm: GitSourceControl) -> None:
        assert scm.current_branch(checkout) == "main"
        assert scm.current_revision(checkout) == git(seed, "rev-parse", "--short=12", "HEAD")
        assert scm.is_clean(checkout)

    def test_clone_failure(self, workspace: Path, tmp_path: Path, scm: GitSourceControl) -> None:
        outcome = scm.clone(str(tmp_path / "does-not-exist.git"), workspace / "east")

        assert not outcome.ok
        assert outcome.detail

    def test_untracked_files_are_clean(self, checkout: Path, scm: GitSourceControl) -> None:
        (checkout / "scratch.txt").write_text("notes\n")
        assert scm.is_clean(checkout)

    def test_modified_tracked_file_is_dirty(self, checkout: Path, scm: GitSourceControl) -> None:
        (checkout / "README.md").write_text("changed\n")
        assert not scm.is_clean(checkout)

    def test_staged_change_is_dirty(self, checkout: Path, scm: GitSourceControl) -> None:
        (checkout / "new.txt").write_text("x\n")
        git(checkout, "add", "new.txt")
        assert not scm.is_clean(checkout)

    def test_ahead_behind(self, checkout: Path, seed: Path, scm: GitSourceControl) -> None:
        commit(seed, "a.txt", "1\n")
        commit(seed, "b.txt", "2\n")
        git(seed, "push", "-q")

        assert scm.fetch(checkout).ok
        counts = scm.can_fast_forward(checkout)

        assert counts is not None
        assert (counts.ahead, counts.behind) == (0, 2)

    def test_no_upstream(self, checkout: Path, scm: GitSourceControl) -> None:
        git(checkout, "checkout", "-q", "-b", "local-only")
        assert scm.can_fast_forward(checkout) is None


class TestSyncWithGit:
    """sync_repository end to end against real repositories."""

    def test_clean_checkout_fast_forwards(
        self, workspace: Path, checkout: Path, seed: Path, scm: GitSourceControl
    ) -> None:
        commit(seed, "a.txt", "1\n")
        git(seed, "push", "-q")

        result = sync_repository(make_spec("east"), workspace, scm)

        assert result.outcome is Outcome.SUCCESS
        assert "fast-forwarded 1" in result.detail
        assert git(checkout, "rev-parse", "HEAD") == git(seed, "rev-parse", "HEAD")

    def test_dirty_checkout_is_untouched(
        self, workspace: Path, checkout: Path, seed: Path, scm: GitSourceControl
    ) -> None:
        before = git(checkout, "rev-parse", "HEAD")
        (checkout / "README.md").write_text("work in progress\n")
        commit(seed, "a.txt", "1\n")
        git(seed, "push", "-q")

        result = sync_repository(make_spec("east"), workspace, scm)

        assert result.outcome is Outcome.SKIPPED
        assert result.kind is ErrorKind.DIRTY_WORKING_TREE
        assert git(checkout, "rev-parse", "HEAD") == before
        assert (checkout / "README.md").read_text() == "work in progress\n"

    def test_diverged_checkout_is_untouched(
        self, workspace: Path, checkout: Path, seed: Path, scm: GitSourceControl
    ) -> None:
        commit(checkout, "local.txt", "mine\n")
        before = git(checkout, "rev-parse", "HEAD")
        commit(seed, "a.txt", "theirs\n")
        git(seed, "push", "-q")

        result = sync_repository(make_spec("east"), workspace, scm)

        assert result.outcome is Outcome.SKIPPED
        assert result.kind is ErrorKind.DIVERGED_HISTORY
        assert git(checkout, "rev-parse", "HEAD") == before

    def test_second_sync_is_a_no_op(
        self, workspace: Path, checkout: Path, seed: Path, scm: GitSourceControl
    ) -> None:
        commit(seed, "a.txt", "1\n")
        git(seed, "push", "-q")
        sync_repository(make_spec("east"), workspace, scm)
        after_first = git(checkout, "rev-parse", "HEAD")

        result = sync_repository(make_spec("east"), workspace, scm)

        assert result.detail == "already up to date"
        assert git(checkout, "rev-parse", "HEAD") == after_first
