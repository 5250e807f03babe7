"""
Git client for the working copy a sync publishes from.

Wraps the handful of porcelain commands the publish loop needs (config,
add, diff, commit, pull --rebase, push). Every command runs through
`_run_git`, which raises GitError with the command and stderr attached.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# SHA of the empty tree object, identical in every SHA-1 repository
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class GitError(Exception):
    """Exception raised when a git operation fails."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
        returncode: int | None = None,
    ):
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.returncode = returncode


def qualify_branch(branch: str) -> str:
    """
    Return the full ref name for a branch.

    Example:
        >>> qualify_branch("main")
        'refs/heads/main'
        >>> qualify_branch("refs/heads/release")
        'refs/heads/release'
    """
    if branch.startswith("refs/"):
        return branch
    return f"refs/heads/{branch}"


def short_branch(branch: str) -> str:
    """Strip a leading refs/heads/ from a branch name."""
    prefix = "refs/heads/"
    return branch[len(prefix):] if branch.startswith(prefix) else branch


class WorkingCopy:
    """
    A checked-out git repository on disk.

    The repository is assumed to exist already; nothing here clones or
    cleans it up.

    Example:
        >>> wc = WorkingCopy(Path("."))
        >>> wc.stage(Path("published"))
        >>> if not wc.diff_is_empty("main", Path("published")):
        ...     wc.commit("Update files")
    """

    def __init__(self, repo_dir: Path | None = None, *, timeout: int = 120) -> None:
        """
        Args:
            repo_dir: Root (or any directory) of the working copy.
                      Defaults to the current working directory.
            timeout: Seconds before a single git command is abandoned.
        """
        self.repo_dir = (repo_dir or Path.cwd()).resolve()
        self.timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        cmd = ["git"] + args

        logger.debug("Running git command: %s", " ".join(cmd))

        env = dict(os.environ)
        # Never block on a credential prompt inside CI
        env["GIT_TERMINAL_PROMPT"] = "0"

        try:
            return subprocess.run(
                cmd,
                cwd=self.repo_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"Git command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise GitError("git not found in PATH", command=cmd) from e

    def _run_git(self, args: list[str], *, check: bool = True) -> str:
        """
        Run a git command and return its stdout.

        Args:
            args: Git command arguments (without "git" prefix).
            check: Whether to raise on non-zero exit code.

        Returns:
            Command stdout as string (stripped).

        Raises:
            GitError: If the command fails and check=True.
        """
        result = self._run(args)

        if check and result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            raise GitError(
                f"Git command failed: git {' '.join(args)}",
                command=["git"] + args,
                stderr=stderr,
                returncode=result.returncode,
            )

        return result.stdout.strip() if result.stdout else ""

    def _pathspec(self, path: Path) -> str:
        """Express `path` relative to the repository root for git."""
        resolved = path if path.is_absolute() else (Path.cwd() / path)
        try:
            relative = resolved.resolve().relative_to(self.repo_dir)
        except ValueError as e:
            raise GitError(f"{path} is outside the working copy {self.repo_dir}") from e
        return relative.as_posix() or "."

    def is_git_repo(self) -> bool:
        """Check if repo_dir is inside a git working tree."""
        try:
            return self._run_git(["rev-parse", "--is-inside-work-tree"]) == "true"
        except GitError:
            return False

    def configure_identity(self, name: str, email: str) -> None:
        """Set the commit author for this repository."""
        self._run_git(["config", "user.name", name])
        self._run_git(["config", "user.email", email])

    def set_pull_rebase(self, enabled: bool = True) -> None:
        """Configure `git pull` to rebase local commits on top of the remote."""
        self._run_git(["config", "pull.rebase", "true" if enabled else "false"])

    def stage(self, path: Path) -> None:
        """Stage additions, modifications and deletions under `path`."""
        self._run_git(["add", "-A", "--", self._pathspec(path)])

    def resolve_ref(self, ref: str, remote: str = "origin") -> str | None:
        """
        Resolve `ref` to a commit SHA.

        Tries the ref itself, then `<remote>/<ref>`, then HEAD.

        Returns:
            Commit SHA, or None in a repository without commits.
        """
        if ref == "HEAD":
            candidates = ["HEAD"]
        else:
            candidates = [ref, f"{remote}/{short_branch(ref)}", "HEAD"]
        for candidate in candidates:
            sha = self._run_git(
                ["rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"],
                check=False,
            )
            if sha:
                if candidate != ref:
                    logger.debug("Ref %s not found locally, comparing against %s", ref, candidate)
                return sha
        return None

    def diff_is_empty(self, ref: str, path: Path, remote: str = "origin") -> bool:
        """
        Compare the index under `path` against `ref`.

        Returns:
            True when the staged content under `path` matches `ref`.

        Raises:
            GitError: If git cannot run the comparison.
        """
        base = self.resolve_ref(ref, remote) or EMPTY_TREE_SHA
        args = ["diff", "--cached", "--quiet", base, "--", self._pathspec(path)]
        result = self._run(args)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitError(
            f"Git command failed: git {' '.join(args)}",
            command=["git"] + args,
            stderr=(result.stderr or "").strip(),
            returncode=result.returncode,
        )

    def commit(self, message: str) -> str:
        """
        Commit the index.

        Returns:
            SHA of the new commit.
        """
        self._run_git(["commit", "-m", message])
        return self.head_sha()

    def head_sha(self) -> str:
        return self._run_git(["rev-parse", "HEAD"])

    def remote_branch_exists(self, remote: str, branch: str) -> bool:
        """Check whether `branch` exists on `remote`."""
        args = ["ls-remote", "--exit-code", "--heads", remote, qualify_branch(branch)]
        result = self._run(args)
        if result.returncode == 0:
            return True
        if result.returncode == 2:
            return False
        raise GitError(
            f"Git command failed: git {' '.join(args)}",
            command=["git"] + args,
            stderr=(result.stderr or "").strip(),
            returncode=result.returncode,
        )

    def pull_rebase(self, remote: str, branch: str) -> None:
        """Fetch `branch` from `remote` and replay local commits on top."""
        self._run_git(["pull", "--rebase", "--autostash", remote, short_branch(branch)])

    def push(self, remote: str, branch: str) -> None:
        """Push HEAD to `branch` on `remote`; rejected unless it fast-forwards."""
        self._run_git(["push", remote, f"HEAD:{qualify_branch(branch)}"])

    def rebase_in_progress(self) -> bool:
        """Return True when a rebase stopped part-way (e.g. on a conflict)."""
        for name in ("rebase-merge", "rebase-apply"):
            git_path = self._run_git(["rev-parse", "--git-path", name])
            path = Path(git_path)
            if not path.is_absolute():
                path = self.repo_dir / path
            if path.exists():
                return True
        return False

    def abort_rebase(self) -> None:
        """Abandon an in-progress rebase, restoring the pre-pull HEAD."""
        self._run_git(["rebase", "--abort"])
