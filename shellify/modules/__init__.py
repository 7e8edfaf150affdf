"""Module discovery across all registered registries."""

from shellify.modules.discovery import ModuleInfo, ModuleService

__all__ = ["ModuleInfo", "ModuleService"]
