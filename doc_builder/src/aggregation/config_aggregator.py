"""Resolution of a module's runtime and documentation configuration.

The aggregator turns the two raw configuration documents of a module into
one ``MergedConfig``. Structural keys (routes, REST and RPC declarations,
content negotiation, validation, authorization) are taken from the runtime
configuration only. Documentation prose is merged in two passes: the
runtime configuration's own ``documentation`` block first, then the
documentation file, whose ``description``/``request``/``response`` values
win key by key.
"""

import copy
from typing import Any, Callable, Dict, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from doc_builder.src.aggregation.controller_config import (
    SCOPES,
    AuthorizationPolicy,
    ContentNegotiationConfig,
    ControllerDocumentation,
    MergedConfig,
    RestControllerConfig,
    RouteConfig,
    RpcControllerConfig,
)
from doc_builder.src.sources.module_source import ModuleSource
from shared.models.documentation import HttpMethod

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

PROSE_KEYS = ("description", "request", "response")
HTTP_METHOD_KEYS = tuple(method.value for method in HttpMethod)


def _section(config: Dict[str, Any], key: str, module: str) -> Dict[str, Any]:
    """Return a mapping section of the configuration, or an empty one."""
    value = config.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("config_section_ignored", module=module, section=key, reason="not a mapping")
        return {}
    return value


def _merge_prose(target: Dict[str, Any], overlay: Dict[str, Any], path: str) -> None:
    """Overlay description/request/response values, ignoring anything structural."""
    for key, value in overlay.items():
        if key in PROSE_KEYS:
            if isinstance(value, str):
                target[key] = value
            else:
                logger.warning("documentation_value_ignored", path=f"{path}.{key}", reason="not a string")
        elif isinstance(value, dict) and (key.upper() in HTTP_METHOD_KEYS or key in SCOPES):
            nested = target.get(key)
            if not isinstance(nested, dict):
                nested = target[key] = {}
            _merge_prose(nested, value, f"{path}.{key}")
        else:
            logger.warning("documentation_key_ignored", path=f"{path}.{key}")


class ConfigAggregator:
    """Resolves the merged configuration of a module."""

    def __init__(self, source: ModuleSource):
        self.source = source

    def resolve(self, module: str) -> MergedConfig:
        """
        Load and merge a module's configuration.

        Args:
            module: Module name

        Returns:
            The module's canonical configuration

        Raises:
            ConfigNotFoundError: If the module is unknown to the module source
        """
        base = self.source.get_module_config(module)
        docs = self.source.get_documentation_config(module)

        documentation = self.merge_documentation(
            _section(base, "documentation", module),
            docs if isinstance(docs, dict) else {},
        )

        negotiation = _section(base, "content_negotiation", module)
        merged = MergedConfig(
            module=module,
            routes=self._parse_each(module, _section(base, "routes", module), RouteConfig),
            rest=self._parse_controllers(module, _section(base, "rest", module), RestControllerConfig),
            rpc=self._parse_controllers(module, _section(base, "rpc", module), RpcControllerConfig),
            content_negotiation=self._parse_one(
                module, "content_negotiation", negotiation, ContentNegotiationConfig, default_on_error=True
            ),
            content_validation={
                controller: {
                    group: name for group, name in groups.items() if isinstance(name, str)
                }
                for controller, groups in _section(base, "content_validation", module).items()
                if isinstance(groups, dict)
            },
            input_filter_specs=_section(base, "input_filter_specs", module),
            authorization=self._parse_each(
                module,
                _section(base, "authorization", module),
                AuthorizationPolicy,
                AuthorizationPolicy.from_config,
            ),
            documentation=self._parse_each(
                module, documentation, ControllerDocumentation, ControllerDocumentation.from_config
            ),
        )

        logger.debug(
            "module_config_resolved",
            module=module,
            rest_controllers=len(merged.rest),
            rpc_controllers=len(merged.rpc),
            documented_controllers=len(merged.documentation),
        )
        return merged

    @staticmethod
    def merge_documentation(
        base_docs: Dict[str, Any],
        file_docs: Dict[str, Any],
    ) -> Dict[str, Dict[str, Any]]:
        """
        Two-pass documentation merge.

        Args:
            base_docs: ``documentation`` block of the runtime configuration
            file_docs: Contents of the documentation file

        Returns:
            Raw documentation per controller
        """
        merged: Dict[str, Dict[str, Any]] = {}
        for source_docs in (base_docs, file_docs):
            for controller, entry in source_docs.items():
                if not isinstance(entry, dict):
                    logger.warning("documentation_entry_ignored", controller=controller)
                    continue
                target = merged.setdefault(controller, {})
                _merge_prose(target, copy.deepcopy(entry), controller)
        return merged

    def _parse_controllers(
        self,
        module: str,
        section: Dict[str, Any],
        model: Type[ModelT],
    ) -> Dict[str, ModelT]:
        controllers: Dict[str, ModelT] = {}
        for controller, raw in section.items():
            if not isinstance(raw, dict) or not raw.get("service_name"):
                logger.warning("controller_skipped", module=module, controller=controller, reason="no service_name")
                continue
            parsed = self._parse_one(module, controller, {**raw, "controller": controller}, model)
            if parsed is not None:
                controllers[controller] = parsed
        return controllers

    def _parse_each(
        self,
        module: str,
        section: Dict[str, Any],
        model: Type[ModelT],
        factory: Optional[Callable[[Dict[str, Any]], ModelT]] = None,
    ) -> Dict[str, ModelT]:
        parsed: Dict[str, ModelT] = {}
        for key, raw in section.items():
            if not isinstance(raw, dict):
                logger.warning("config_entry_ignored", module=module, key=key, reason="not a mapping")
                continue
            value = self._parse_one(module, key, raw, model, factory=factory)
            if value is not None:
                parsed[key] = value
        return parsed

    @staticmethod
    def _parse_one(
        module: str,
        key: str,
        raw: Dict[str, Any],
        model: Type[ModelT],
        factory: Optional[Callable[[Dict[str, Any]], ModelT]] = None,
        default_on_error: bool = False,
    ):
        try:
            return factory(raw) if factory else model.model_validate(raw)
        except ValidationError as e:
            logger.warning(
                "config_entry_invalid",
                module=module,
                key=key,
                model=model.__name__,
                error_count=e.error_count(),
                error=str(e),
            )
            if default_on_error:
                return model()
            return None
