"""Module configuration sources."""

from .module_source import FileModuleSource, InMemoryModuleSource, ModuleSource

__all__ = ["FileModuleSource", "InMemoryModuleSource", "ModuleSource"]
