"""Module configuration sources.

A ``ModuleSource`` is the only way the builder reaches module
configuration. Two implementations are provided: an in-memory source for
embedding and tests, and a file-backed source that reads one JSON module
configuration (plus an optional co-located documentation configuration)
per module directory.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

import structlog

from doc_builder.src.config import DocumentationSettings
from doc_builder.src.exceptions import ConfigNotFoundError

logger = structlog.get_logger(__name__)


@runtime_checkable
class ModuleSource(Protocol):
    """Capability exposing module configuration to the builder."""

    def list_modules(self) -> List[str]:
        """Module names in enumeration order."""
        ...

    def get_module_config(self, name: str) -> Dict[str, Any]:
        """Runtime configuration of a module; raises ConfigNotFoundError if unknown."""
        ...

    def get_documentation_config(self, name: str) -> Dict[str, Any]:
        """Documentation configuration of a module; empty when it has none."""
        ...


class InMemoryModuleSource:
    """Module source backed by plain dictionaries."""

    def __init__(
        self,
        modules: Mapping[str, Dict[str, Any]],
        documentation: Optional[Mapping[str, Dict[str, Any]]] = None,
    ):
        self._modules = dict(modules)
        self._documentation = dict(documentation or {})

    def list_modules(self) -> List[str]:
        return list(self._modules)

    def get_module_config(self, name: str) -> Dict[str, Any]:
        if name not in self._modules:
            raise ConfigNotFoundError(name)
        return self._modules[name]

    def get_documentation_config(self, name: str) -> Dict[str, Any]:
        return self._documentation.get(name, {})


class FileModuleSource:
    """
    Module source reading JSON files from a modules directory.

    Layout::

        <modules_path>/<Module>/<config_subdirectory>/module.config.json
        <modules_path>/<Module>/<config_subdirectory>/documentation.config.json
    """

    def __init__(
        self,
        modules_path: Path,
        modules: Optional[List[str]] = None,
        config_subdirectory: str = "config",
        module_config_filename: str = "module.config.json",
        documentation_config_filename: str = "documentation.config.json",
    ):
        self.modules_path = Path(modules_path)
        self._modules = list(modules or [])
        self.config_subdirectory = config_subdirectory
        self.module_config_filename = module_config_filename
        self.documentation_config_filename = documentation_config_filename

        logger.debug(
            "file_module_source_initialized",
            modules_path=str(self.modules_path),
            explicit_modules=self._modules,
        )

    @classmethod
    def from_settings(cls, settings: DocumentationSettings) -> "FileModuleSource":
        return cls(
            modules_path=settings.modules_path,
            modules=settings.modules,
            config_subdirectory=settings.config_subdirectory,
            module_config_filename=settings.module_config_filename,
            documentation_config_filename=settings.documentation_config_filename,
        )

    def list_modules(self) -> List[str]:
        if self._modules:
            return list(self._modules)
        if not self.modules_path.is_dir():
            logger.warning("modules_path_missing", modules_path=str(self.modules_path))
            return []
        return sorted(
            entry.name
            for entry in self.modules_path.iterdir()
            if entry.is_dir() and self.get_module_config_path(entry.name).is_file()
        )

    def get_module_config_path(self, name: str) -> Path:
        return self.modules_path / name / self.config_subdirectory / self.module_config_filename

    def get_module_config(self, name: str) -> Dict[str, Any]:
        if self._modules and name not in self._modules:
            raise ConfigNotFoundError(name, "module is not enabled")

        path = self.get_module_config_path(name)
        if not path.is_file():
            logger.error("module_config_not_found", module=name, path=str(path))
            raise ConfigNotFoundError(name, f"missing {path}")
        return self._read_json(name, path)

    def get_documentation_config(self, name: str) -> Dict[str, Any]:
        # Documentation lives next to the module configuration
        path = self.get_module_config_path(name).with_name(self.documentation_config_filename)
        if not path.is_file():
            logger.debug("documentation_config_absent", module=name, path=str(path))
            return {}
        return self._read_json(name, path)

    def _read_json(self, name: str, path: Path) -> Dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as e:
            logger.error("module_config_invalid_json", module=name, path=str(path), error=str(e))
            raise ConfigNotFoundError(name, f"invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigNotFoundError(name, f"{path} does not contain a JSON object")
        return data
