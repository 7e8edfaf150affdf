"""Registry acquisition and validation pipeline.

The registry package turns a user-supplied URL into a locally cached,
structurally verified and queryable registry:
- URL validation: syntax and reachability, before any local state changes
- Source control: shallow clones in a per-registry cache
- Structure validation: index and module manifests
- Client: add/remove/list/sync over the persisted registry list
"""

from shellify.registry.client import RegistryClient
from shellify.registry.models import Module, Registry, RegistryIndex, RemovalResult, RepositoryInfo

__all__ = [
    "RegistryClient",
    "Module",
    "Registry",
    "RegistryIndex",
    "RemovalResult",
    "RepositoryInfo",
]
