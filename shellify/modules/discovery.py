"""Module discovery across registered registries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from shellify.errors import ShellifyError, UnknownModuleError
from shellify.registry.client import RegistryClient
from shellify.registry.models import Module, Registry
from shellify.utils.log import null_logger


@dataclass
class ModuleInfo:
    """A module together with the registry that declares it."""

    module: Module
    registry_name: str
    registry_url: str

    @property
    def name(self) -> str:
        return self.module.name

    @property
    def description(self) -> str:
        return self.module.description

    @property
    def shell(self) -> str:
        return self.module.shell


class ModuleService:
    """Read-only views over the modules of every registered registry."""

    def __init__(self, client: RegistryClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self._log = logger or null_logger()

    def list_all_modules(self) -> list[ModuleInfo]:
        """All modules, sorted by name. Unreadable registries are skipped."""
        modules: list[ModuleInfo] = []
        for registry in self.client.list_registries():
            try:
                modules.extend(self._modules_of(registry))
            except ShellifyError as e:
                self._log.warning(
                    "Failed to read modules from registry %s: %s", registry.name, e.message
                )
        return sorted(modules, key=lambda m: m.name)

    def list_modules_by_registry(self, identifier: str) -> list[ModuleInfo]:
        registry = self.client.get_registry(identifier)
        return sorted(self._modules_of(registry), key=lambda m: m.name)

    def search_modules(self, query: str) -> list[ModuleInfo]:
        """Case-insensitive substring match on module name and description."""
        needle = query.lower()
        return [
            m
            for m in self.list_all_modules()
            if needle in m.name.lower() or needle in m.description.lower()
        ]

    def filter_modules_by_shell(self, shell: str) -> list[ModuleInfo]:
        """Modules targeting ``shell``, plus modules that target no particular shell."""
        return [
            m for m in self.list_all_modules() if not m.shell or m.shell.lower() == shell.lower()
        ]

    def get_module_details(self, module_name: str) -> ModuleInfo:
        for info in self.list_all_modules():
            if info.name == module_name:
                return info
        raise UnknownModuleError(module_name)

    def _modules_of(self, registry: Registry) -> list[ModuleInfo]:
        index = self.client.get_registry_index(registry.name)
        return [
            ModuleInfo(module=module, registry_name=registry.name, registry_url=registry.url)
            for module in index.modules.values()
        ]
