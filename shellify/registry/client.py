"""Registry client: add, remove, list and sync registered registries.

The client owns the registry list. It is loaded once at construction and
every mutation rewrites it in full. Adding a registry runs the whole
acquisition pipeline (URL check, clone, structure validation) and only
persists the registration once the clone is certified; on failure the clone
is rolled back.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from shellify.config import ShellifyConfig
from shellify.errors import (
    RegistryExistsError,
    RegistryNotFoundError,
    RepositoryNotClonedError,
    ShellifyError,
)
from shellify.registry.git_client import GitClient
from shellify.registry.models import Registry, RegistryIndex, RemovalResult, RepositoryInfo
from shellify.registry.naming import generate_registry_name, validate_registry_name
from shellify.registry.store import RegistryStore
from shellify.registry.structure_validator import StructureValidator, load_index_manifest
from shellify.registry.url_validator import URLValidator
from shellify.utils.git_ops import GitBackend, create_backend
from shellify.utils.log import null_logger

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RegistryClient:
    """Manages the registered registries and their local clones."""

    def __init__(
        self,
        config: ShellifyConfig,
        git_backend: Optional[GitBackend] = None,
        url_validator: Optional[URLValidator] = None,
        logger: Optional[logging.Logger] = None,
        clock: Clock = utc_now,
    ):
        self.config = config
        self._log = logger or null_logger()
        self._clock = clock
        self.store = RegistryStore(config.registries_file)
        self.git = GitClient(
            config.cache_dir,
            backend=git_backend or create_backend(config.git_backend),
            logger=self._log,
        )
        self.url_validator = url_validator or URLValidator(
            timeout=config.http_timeout, logger=self._log
        )
        self._registries: list[Registry] = self.store.load()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def add_registry(self, url: str, name: Optional[str] = None) -> Registry:
        """Validate, clone and certify ``url``, then register it as ``name``.

        Raises:
            InvalidRegistryNameError: If ``name`` is unsafe as a cache entry.
            RegistryExistsError: If the URL or name is already registered.
            URLFormatError, RepositoryUnreachableError: If the URL check fails.
            SourceControlError: If the clone fails.
            StructureValidationError: If the clone is not a valid registry.
            PersistenceError: If the registry list cannot be written.

        Any error raised after the clone started has ``cleanup_error`` set
        when rolling back the clone also failed.
        """
        name = name or generate_registry_name(url)
        validate_registry_name(name)

        for registry in self._registries:
            if registry.url == url:
                raise RegistryExistsError("url", url)
            if registry.name == name:
                raise RegistryExistsError("name", name)

        self._log.info("Adding registry: %s (name: %s)", url, name)
        self.url_validator.validate_url(url)
        self._log.debug("URL validation passed")

        # Never roll back a cache entry this add did not create.
        created = not self.git.repository_path(name).exists()
        try:
            path = self.git.clone_repository(url, name)
            StructureValidator(path, logger=self._log).validate_structure()

            now = self._clock()
            registry = Registry(name=name, url=url, added_at=now, last_sync=now)
            self._commit([*self._registries, registry])
        except Exception as e:
            self._log.error("Failed to add registry %s: %s", name, e)
            cleanup_error = self._rollback_clone(name) if created else None
            if isinstance(e, ShellifyError):
                e.cleanup_error = cleanup_error
            raise

        self._log.info("Registry '%s' added successfully", name)
        return registry

    def remove_registry(self, identifier: str) -> RemovalResult:
        """Unregister the registry matching ``identifier`` (name or URL) and drop its clone.

        Raises:
            RegistryNotFoundError: If nothing matches; the list is untouched.
        """
        registry = self.get_registry(identifier)
        self._log.info("Removing registry: %s", registry.name)

        cleanup_error = None
        if self.git.is_repository_cloned(registry.name):
            try:
                self.git.remove_repository(registry.name)
            except ShellifyError as e:
                self._log.warning("Failed to remove cache for %s: %s", registry.name, e.message)
                cleanup_error = e

        self._commit([r for r in self._registries if r is not registry])
        return RemovalResult(registry=registry, cleanup_error=cleanup_error)

    def list_registries(self) -> list[Registry]:
        return list(self._registries)

    def sync_registry(self, name: str) -> Registry:
        """Re-fetch the registry called ``name`` and re-certify it.

        ``last_sync`` only moves forward once validation passes. A failed sync
        may leave a partially updated clone on disk; retry the sync.

        Raises:
            RegistryNotFoundError: If no registry has that name.
            SourceControlError: If the clone or pull fails.
            StructureValidationError: If the updated tree is invalid.
        """
        registry = self._find(lambda r: r.name == name, name)

        if self.git.is_repository_cloned(name):
            self._log.info("Updating registry: %s", name)
            path = self.git.update_repository(name)
        else:
            self._log.info("No local copy of %s, cloning", name)
            validate_registry_name(name)
            self.git.discard(name)
            path = self.git.clone_repository(registry.url, name)

        StructureValidator(path, logger=self._log).validate_structure()

        now = self._clock()
        if registry.last_sync is not None and registry.last_sync > now:
            now = registry.last_sync
        updated = dataclasses.replace(registry, last_sync=now)
        self._commit([updated if r is registry else r for r in self._registries])

        self._log.info("Registry '%s' synced", name)
        return updated

    def sync_all_registries(self) -> dict[str, Union[Registry, ShellifyError]]:
        """Sync every registry; a failure does not stop the others."""
        results: dict[str, Union[Registry, ShellifyError]] = {}
        for registry in list(self._registries):
            try:
                results[registry.name] = self.sync_registry(registry.name)
            except ShellifyError as e:
                self._log.warning("Failed to sync %s: %s", registry.name, e.message)
                results[registry.name] = e
        return results

    def get_registry(self, identifier: str) -> Registry:
        """Look up a registry by name or URL."""
        return self._find(lambda r: r.matches(identifier), identifier)

    def get_registry_index(self, identifier: str) -> RegistryIndex:
        """Read the cached index of a registry. Never clones or syncs.

        Raises:
            RegistryNotFoundError: If nothing matches ``identifier``.
            RepositoryNotClonedError: If the registry has no local clone.
            StructureValidationError: If ``index.json`` is missing or unparsable.
        """
        registry = self.get_registry(identifier)
        if not self.git.is_repository_cloned(registry.name):
            raise RepositoryNotClonedError(
                registry.name, str(self.git.repository_path(registry.name))
            )
        return load_index_manifest(self.git.repository_path(registry.name))

    def get_repository_info(self, identifier: str) -> RepositoryInfo:
        registry = self.get_registry(identifier)
        return self.git.get_repository_info(registry.name)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _find(self, predicate: Callable[[Registry], bool], identifier: str) -> Registry:
        for registry in self._registries:
            if predicate(registry):
                return registry
        raise RegistryNotFoundError(identifier)

    def _commit(self, registries: list[Registry]) -> None:
        # Disk first, so a failed write leaves memory matching disk.
        self.store.save(registries)
        self._registries = registries

    def _rollback_clone(self, name: str) -> Optional[ShellifyError]:
        try:
            self.git.discard(name)
        except ShellifyError as e:
            self._log.warning("Failed to clean up clone of %s: %s", name, e.message)
            return e
        return None
