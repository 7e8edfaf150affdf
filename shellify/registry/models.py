"""Registry data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from shellify.errors import ShellifyError


@dataclass
class Registry:
    """A registered registry, as persisted in the registry list."""

    name: str
    url: str
    added_at: datetime
    last_sync: Optional[datetime] = None  # None means never synced

    @property
    def never_synced(self) -> bool:
        return self.last_sync is None

    def matches(self, identifier: str) -> bool:
        """True if ``identifier`` is this registry's name or URL."""
        return identifier in (self.name, self.url)


@dataclass
class Module:
    """A module declared in a registry index."""

    name: str
    description: str = ""
    version: str = ""
    path: str = ""
    shell: str = ""


@dataclass
class RegistryIndex:
    """Parsed contents of a registry's ``index.json``."""

    name: str
    description: str = ""
    version: str = ""
    modules: dict[str, Module] = field(default_factory=dict)


@dataclass
class RepositoryInfo:
    """Diagnostic view of a local clone. Unknown fields keep their zero value."""

    name: str
    path: Path
    remote_url: str = ""
    last_commit_hash: str = ""
    last_commit_message: str = ""
    last_commit_time: Optional[datetime] = None


@dataclass
class RemovalResult:
    """Outcome of removing a registry.

    The registry record is always gone when this is returned; ``cleanup_error``
    holds the failure of the best-effort cache removal, if there was one.
    """

    registry: Registry
    cleanup_error: Optional[ShellifyError] = None


def registry_to_dict(registry: Registry) -> dict:
    return {
        "name": registry.name,
        "url": registry.url,
        "added_at": registry.added_at.isoformat(),
        "last_sync": registry.last_sync.isoformat() if registry.last_sync else None,
    }


def dict_to_registry(data: dict) -> Registry:
    last_sync = data.get("last_sync")
    return Registry(
        name=data["name"],
        url=data["url"],
        added_at=datetime.fromisoformat(data["added_at"]),
        last_sync=datetime.fromisoformat(last_sync) if last_sync else None,
    )


def dict_to_module(data: dict) -> Module:
    return Module(
        name=data.get("name", "") or "",
        description=data.get("description", "") or "",
        version=data.get("version", "") or "",
        path=data.get("path", "") or "",
        shell=data.get("shell", "") or "",
    )


def dict_to_index(data: dict) -> RegistryIndex:
    modules = data.get("modules") or {}
    return RegistryIndex(
        name=data.get("name", "") or "",
        description=data.get("description", "") or "",
        version=data.get("version", "") or "",
        modules={key: dict_to_module(value) for key, value in modules.items()},
    )
