"""Source control client: the per-registry clone cache.

Each registry gets one shallow clone at ``<cache_dir>/<name>``. Only the
current tree is ever needed, so clones and pulls are depth-1.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from shellify.errors import RepositoryNotClonedError, SourceControlError
from shellify.registry.models import RepositoryInfo
from shellify.utils.git_ops import GitBackend, GitPythonBackend
from shellify.utils.log import null_logger


class GitClient:
    """Manages shallow clones of registries under a cache directory."""

    def __init__(
        self,
        cache_dir: str | Path,
        backend: Optional[GitBackend] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.backend = backend or GitPythonBackend()
        self._log = logger or null_logger()

    def repository_path(self, name: str) -> Path:
        return self.cache_dir / name

    def is_repository_cloned(self, name: str) -> bool:
        return (self.repository_path(name) / ".git").is_dir()

    def clone_repository(self, url: str, name: str) -> Path:
        """Clone ``url`` into the cache, or update the existing clone.

        Returns:
            The local path of the working copy.

        Raises:
            SourceControlError: If the cache cannot be created or git fails.
        """
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SourceControlError(
                f"failed to create cache directory: {e}", path=str(self.cache_dir), cause=e
            ) from e

        target = self.repository_path(name)
        if target.exists():
            self._log.debug("Repository already exists, updating: %s", target)
            self.update_repository(name)
            return target

        self._log.info("Cloning repository: %s to %s", url, target)
        self.backend.clone(url, target)
        self._log.debug("Repository cloned successfully: %s", target)
        return target

    def update_repository(self, name: str) -> Path:
        """Shallow-pull the existing clone of ``name``."""
        target = self.repository_path(name)
        self._log.debug("Updating repository: %s", target)
        self.backend.pull(target)
        self._log.debug("Repository updated successfully: %s", target)
        return target

    def remove_repository(self, name: str) -> None:
        """Delete the clone of ``name``.

        Raises:
            RepositoryNotClonedError: If there is no clone.
            SourceControlError: If the directory cannot be deleted.
        """
        target = self.repository_path(name)
        if not self.is_repository_cloned(name):
            raise RepositoryNotClonedError(name, str(target))

        self._log.info("Removing repository: %s", target)
        self._delete_tree(target)

    def discard(self, name: str) -> None:
        """Delete whatever is at the cache entry for ``name``, clone or not."""
        target = self.repository_path(name)
        if target.exists():
            self._log.debug("Discarding cache entry: %s", target)
            self._delete_tree(target)

    def get_repository_info(self, name: str) -> RepositoryInfo:
        """Best-effort description of the clone; unknown fields stay empty."""
        target = self.repository_path(name)
        info = RepositoryInfo(name=name, path=target)

        if not self.is_repository_cloned(name):
            self._log.debug("Repository not cloned: %s", name)
            return info

        try:
            info.remote_url = self.backend.remote_url(target)
        except SourceControlError as e:
            self._log.debug("Could not read remote URL of %s: %s", name, e.message)

        try:
            commit = self.backend.last_commit(target)
            info.last_commit_hash = commit.hexsha
            info.last_commit_message = commit.message
            info.last_commit_time = commit.committed_at
        except SourceControlError as e:
            self._log.debug("Could not read last commit of %s: %s", name, e.message)

        return info

    def _delete_tree(self, target: Path) -> None:
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as e:
            raise SourceControlError(
                f"failed to remove repository: {e}", path=str(target), cause=e
            ) from e
