"""Git operations used by the clone cache.

``GitBackend`` is the narrow capability the rest of shellify depends on.
Two implementations are provided: ``GitPythonBackend`` drives git through
GitPython, ``CommandLineGitBackend`` runs the ``git`` binary directly. Both
translate failures into ``SourceControlError`` with the tool's output.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from git import GitCommandError, GitError, Repo

from shellify.errors import SourceControlError

# Field separator for `git log --format`; cannot appear in a commit subject.
_LOG_SEPARATOR = "\x1f"


@dataclass
class CommitInfo:
    """The tip commit of a working copy."""

    hexsha: str
    message: str
    committed_at: datetime


class GitBackend(ABC):
    """Version-control operations used by the Source Control Client."""

    @abstractmethod
    def clone(self, url: str, dest: Path) -> None:
        """Shallow (depth-1) clone ``url`` into ``dest``."""

    @abstractmethod
    def pull(self, dest: Path) -> None:
        """Replace the working copy at ``dest`` with a depth-1 fetch of ``origin``."""

    @abstractmethod
    def remote_url(self, dest: Path) -> str:
        """Return the ``origin`` remote URL of the working copy."""

    @abstractmethod
    def last_commit(self, dest: Path) -> CommitInfo:
        """Return the tip commit of the working copy."""


class GitPythonBackend(GitBackend):
    """Backend built on GitPython."""

    def clone(self, url: str, dest: Path) -> None:
        try:
            Repo.clone_from(url, dest, depth=1)
        except GitCommandError as e:
            raise SourceControlError(
                f"git clone failed: {url}", path=str(dest), output=_command_output(e), cause=e
            ) from e

    def pull(self, dest: Path) -> None:
        try:
            repo = Repo(dest)
            repo.git.fetch("--depth", "1", "origin")
            repo.git.reset("--hard", "FETCH_HEAD")
        except GitCommandError as e:
            raise SourceControlError(
                "git pull failed", path=str(dest), output=_command_output(e), cause=e
            ) from e
        except GitError as e:
            raise SourceControlError(f"Not a git repository: {dest}", path=str(dest), cause=e) from e

    def remote_url(self, dest: Path) -> str:
        try:
            return Repo(dest).remotes.origin.url
        except (GitError, AttributeError, ValueError) as e:
            raise SourceControlError(
                f"Cannot read origin remote of {dest}", path=str(dest), cause=e
            ) from e

    def last_commit(self, dest: Path) -> CommitInfo:
        try:
            commit = Repo(dest).head.commit
        except (GitError, ValueError) as e:
            raise SourceControlError(f"Cannot read HEAD of {dest}", path=str(dest), cause=e) from e
        return CommitInfo(
            hexsha=commit.hexsha,
            message=commit.summary if isinstance(commit.summary, str) else commit.summary.decode(),
            committed_at=datetime.fromtimestamp(commit.committed_date, tz=timezone.utc),
        )


class CommandLineGitBackend(GitBackend):
    """Backend that shells out to the ``git`` executable."""

    def __init__(self, git_executable: str = "git") -> None:
        self.git_executable = git_executable

    def clone(self, url: str, dest: Path) -> None:
        self._run(["clone", "--depth", "1", url, str(dest)], cwd=None, path=dest)

    def pull(self, dest: Path) -> None:
        self._run(["fetch", "--depth", "1", "origin"], cwd=dest, path=dest)
        self._run(["reset", "--hard", "FETCH_HEAD"], cwd=dest, path=dest)

    def remote_url(self, dest: Path) -> str:
        return self._run(["remote", "get-url", "origin"], cwd=dest, path=dest).strip()

    def last_commit(self, dest: Path) -> CommitInfo:
        fmt = _LOG_SEPARATOR.join(["%H", "%s", "%ct"])
        output = self._run(["log", "-1", f"--format={fmt}"], cwd=dest, path=dest).strip()
        parts = output.split(_LOG_SEPARATOR)
        if len(parts) != 3:
            raise SourceControlError(
                f"Unexpected git log output in {dest}", path=str(dest), output=output
            )
        try:
            timestamp = int(parts[2])
        except ValueError as e:
            raise SourceControlError(
                f"Invalid commit timestamp '{parts[2]}'", path=str(dest), output=output, cause=e
            ) from e
        return CommitInfo(
            hexsha=parts[0],
            message=parts[1],
            committed_at=datetime.fromtimestamp(timestamp, tz=timezone.utc),
        )

    def _run(self, args: list[str], cwd: Path | None, path: Path) -> str:
        """Run git and return its combined stdout/stderr."""
        command = [self.git_executable, *args]
        try:
            proc = subprocess.run(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as e:
            raise SourceControlError(
                f"Cannot run {self.git_executable}: {e}", path=str(path), cause=e
            ) from e

        if proc.returncode != 0:
            raise SourceControlError(
                f"git {args[0]} failed with exit code {proc.returncode}",
                path=str(path),
                output=proc.stdout,
            )
        return proc.stdout


def create_backend(name: str) -> GitBackend:
    """Build the backend selected by the ``git_backend`` config key."""
    if name == "gitpython":
        return GitPythonBackend()
    if name == "cli":
        return CommandLineGitBackend()
    raise ValueError(f"Unknown git backend: {name}")


def _command_output(error: GitCommandError) -> str:
    parts = [str(error.stdout or "").strip(), str(error.stderr or "").strip()]
    return "\n".join(p for p in parts if p)
