"""
Pytest configuration and shared fixtures.

Provides git fixtures (a bare remote, a checkout pushing to it, and a second
clone acting as a concurrent publisher), sample build trees, and isolation
of the treesync config and environment.
"""

import subprocess
from pathlib import Path

import pytest

from treesync.core.config import clear_cache


def run_git(*args: str, cwd: Path) -> str:
    """Run a git command in `cwd` and return stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def configure_user(repo: Path) -> None:
    run_git("config", "user.email", "test@example.com", cwd=repo)
    run_git("config", "user.name", "Test User", cwd=repo)
    run_git("config", "commit.gpgsign", "false", cwd=repo)


# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config, event logs and TREESYNC_* env vars out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    for name in (
        "TREESYNC_MAX_ATTEMPTS",
        "TREESYNC_RETRY_DELAY",
        "TREESYNC_AUTHOR_NAME",
        "TREESYNC_AUTHOR_EMAIL",
        "TREESYNC_COMMIT_MESSAGE",
        "TREESYNC_REMOTE",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Git Fixtures
# ==============================================================================


@pytest.fixture
def git_remote(tmp_path: Path) -> Path:
    """Create a bare repository acting as the shared remote."""
    remote = tmp_path / "remote.git"
    subprocess.run(
        ["git", "init", "--bare", str(remote)],
        capture_output=True,
        check=True,
    )
    return remote


@pytest.fixture
def git_repo(tmp_path: Path, git_remote: Path) -> Path:
    """
    Create a checkout on `main` with one commit, pushed to `git_remote`.
    """
    repo = tmp_path / "repo"
    repo.mkdir()
    run_git("init", cwd=repo)
    configure_user(repo)
    run_git("checkout", "-b", "main", cwd=repo)

    (repo / "README.md").write_text("# Test Repo\n")
    run_git("add", "README.md", cwd=repo)
    run_git("commit", "-m", "Initial commit", cwd=repo)

    run_git("remote", "add", "origin", str(git_remote), cwd=repo)
    run_git("push", "-u", "origin", "main", cwd=repo)

    return repo


@pytest.fixture
def other_clone(tmp_path: Path, git_remote: Path, git_repo: Path) -> Path:
    """A second checkout of `main`, used to publish concurrently."""
    clone = tmp_path / "other"
    subprocess.run(
        ["git", "clone", "-b", "main", str(git_remote), str(clone)],
        capture_output=True,
        check=True,
    )
    configure_user(clone)
    return clone


@pytest.fixture
def git():
    """Expose the git runner used by the fixtures: git("log", cwd=repo)."""
    return run_git


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """A build output tree with a nested directory and a dotfile."""
    build = tmp_path / "build"
    (build / "assets").mkdir(parents=True)
    (build / "index.html").write_text("<h1>hello</h1>\n")
    (build / "assets" / "app.js").write_text("console.log('hi');\n")
    (build / ".nojekyll").write_text("")
    return build
