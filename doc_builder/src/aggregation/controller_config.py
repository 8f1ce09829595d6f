"""Parsed per-module configuration.

Raw module configuration is loosely structured nested dictionaries. These
models give it one canonical shape so that builders never have to probe
for optional keys themselves.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from shared.models.documentation import HttpMethod

logger = structlog.get_logger(__name__)

# Internal version prefix added to every route by the routing layer
VERSION_SEGMENT = "[/v:version]"

_OPTIONAL_PARAMETER = re.compile(r"\[[^\]]*:[^\]]+\]")

COLLECTION_SCOPE = "collection"
ENTITY_SCOPE = "entity"
SCOPES = (COLLECTION_SCOPE, ENTITY_SCOPE)


def normalize_http_methods(methods: Any, controller: str = "") -> Tuple[HttpMethod, ...]:
    """
    Upper-case, de-duplicate and filter a declared list of HTTP methods.

    Args:
        methods: Declared methods (any iterable of strings)
        controller: Controller name, for logging only

    Returns:
        Known methods in declaration order
    """
    if methods is None:
        return ()
    if isinstance(methods, str):
        methods = [methods]

    normalized: List[HttpMethod] = []
    for method in methods:
        try:
            http_method = HttpMethod(str(method).upper())
        except ValueError:
            logger.warning("unsupported_http_method_ignored", controller=controller, method=method)
            continue
        if http_method not in normalized:
            normalized.append(http_method)
    return tuple(normalized)


def _method_map(raw: Dict[str, Any]) -> Dict[HttpMethod, Any]:
    """Pick the HTTP-method keyed entries out of a mixed mapping."""
    methods = {}
    for key, value in raw.items():
        try:
            methods[HttpMethod(str(key).upper())] = value
        except ValueError:
            continue
    return methods


def _flag_map(raw: Dict[str, Any], path: str = "") -> Dict[HttpMethod, bool]:
    """Method-keyed boolean flags; non-boolean values are dropped one by one."""
    flags = {}
    for method, value in _method_map(raw).items():
        if not isinstance(value, bool):
            logger.warning(
                "authorization_flag_ignored",
                path=f"{path}.{method.value}" if path else method.value,
                value=repr(value),
                reason="not a boolean",
            )
            continue
        flags[method] = value
    return flags


def _string_list(value: Any, field: str = "") -> Tuple[str, ...]:
    """Wrap a single string in a tuple and drop empty or non-string entries."""
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    elif not isinstance(value, (list, tuple)):
        logger.warning("string_list_ignored", field=field, value=repr(value), reason="not a list")
        return ()

    strings: List[str] = []
    for entry in value:
        if not isinstance(entry, str) or not entry.strip():
            logger.warning("string_list_entry_ignored", field=field, value=repr(entry))
            continue
        strings.append(entry.strip())
    return tuple(strings)


class RouteConfig(BaseModel):
    """A named route."""

    route: str = ""
    defaults: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def documentation_route(self) -> str:
        """The route without the internal version segment."""
        return self.route.replace(VERSION_SEGMENT, "")

    @property
    def has_optional_segments(self) -> bool:
        return bool(_OPTIONAL_PARAMETER.search(self.documentation_route))

    def has_parameter(self, name: str) -> bool:
        return re.search(rf":{re.escape(name)}\b", self.documentation_route) is not None


class RestControllerConfig(BaseModel):
    """REST controller declaration."""

    controller: str
    service_name: str = Field(..., min_length=1)
    route_name: Optional[str] = None
    route_identifier_name: Optional[str] = None
    collection_http_methods: Tuple[HttpMethod, ...] = ()
    entity_http_methods: Tuple[HttpMethod, ...] = ()
    collection_query_whitelist: Tuple[str, ...] = ()
    entity_class: Optional[str] = None
    collection_class: Optional[str] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("collection_http_methods", "entity_http_methods", mode="before")
    @classmethod
    def validate_http_methods(cls, v: Any, info: ValidationInfo) -> Tuple[HttpMethod, ...]:
        return normalize_http_methods(v, info.data.get("controller", ""))

    @field_validator("collection_query_whitelist", mode="before")
    @classmethod
    def validate_query_whitelist(cls, v: Any, info: ValidationInfo) -> Tuple[str, ...]:
        return _string_list(v, f"{info.data.get('controller', '')}.collection_query_whitelist")


class RpcControllerConfig(BaseModel):
    """RPC controller declaration."""

    controller: str
    service_name: str = Field(..., min_length=1)
    route_name: Optional[str] = None
    http_methods: Tuple[HttpMethod, ...] = ()

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("http_methods", mode="before")
    @classmethod
    def validate_http_methods(cls, v: Any, info: ValidationInfo) -> Tuple[HttpMethod, ...]:
        return normalize_http_methods(v, info.data.get("controller", ""))


class MethodDocumentation(BaseModel):
    """Prose documented for one HTTP method."""

    description: str = ""
    request: str = ""
    response: str = ""

    model_config = {"frozen": True, "extra": "ignore"}


class ScopedDocumentation(BaseModel):
    """Prose for the collection or entity half of a REST controller."""

    description: str = ""
    methods: Dict[HttpMethod, MethodDocumentation] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def from_config(cls, raw: Dict[str, Any]) -> "ScopedDocumentation":
        return cls(
            description=str(raw.get("description") or ""),
            methods={
                method: MethodDocumentation.model_validate(block)
                for method, block in _method_map(raw).items()
                if isinstance(block, dict)
            },
        )


class ControllerDocumentation(BaseModel):
    """All documentation prose attached to one controller."""

    description: str = ""
    methods: Dict[HttpMethod, MethodDocumentation] = Field(default_factory=dict)
    collection: ScopedDocumentation = Field(default_factory=ScopedDocumentation)
    entity: ScopedDocumentation = Field(default_factory=ScopedDocumentation)

    model_config = {"frozen": True}

    @classmethod
    def from_config(cls, raw: Dict[str, Any]) -> "ControllerDocumentation":
        scoped = {
            scope: ScopedDocumentation.from_config(raw[scope])
            for scope in SCOPES
            if isinstance(raw.get(scope), dict)
        }
        return cls(
            description=str(raw.get("description") or ""),
            methods={
                method: MethodDocumentation.model_validate(block)
                for method, block in _method_map(raw).items()
                if isinstance(block, dict)
            },
            **scoped,
        )

    def for_method(self, method: HttpMethod, scope: Optional[str] = None) -> MethodDocumentation:
        """
        Documentation for a method, preferring the scoped block.

        Args:
            method: HTTP method
            scope: "collection", "entity" or None for RPC

        Returns:
            The most specific documentation found, or empty documentation
        """
        if scope in SCOPES:
            scoped: ScopedDocumentation = getattr(self, scope)
            if method in scoped.methods:
                return scoped.methods[method]
        return self.methods.get(method, MethodDocumentation())


class AuthorizationPolicy(BaseModel):
    """Declared authorization requirements of one controller."""

    methods: Dict[HttpMethod, bool] = Field(default_factory=dict)
    collection: Dict[HttpMethod, bool] = Field(default_factory=dict)
    entity: Dict[HttpMethod, bool] = Field(default_factory=dict)
    actions: Dict[str, Dict[HttpMethod, bool]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def from_config(cls, raw: Dict[str, Any]) -> "AuthorizationPolicy":
        scoped = {
            scope: _flag_map(raw[scope], scope)
            for scope in SCOPES
            if isinstance(raw.get(scope), dict)
        }
        actions = raw.get("actions")
        return cls(
            methods=_flag_map(raw),
            actions={
                name: _flag_map(rules, f"actions.{name}")
                for name, rules in (actions.items() if isinstance(actions, dict) else ())
                if isinstance(rules, dict)
            },
            **scoped,
        )

    def requires_authorization(
        self,
        method: HttpMethod,
        scope: Optional[str] = None,
        action: Optional[str] = None,
    ) -> bool:
        """Whether the method is declared as requiring authorization; False when undeclared."""
        if action is not None and method in self.actions.get(action, {}):
            return self.actions[action][method]
        if scope in SCOPES:
            rules: Dict[HttpMethod, bool] = getattr(self, scope)
            if method in rules:
                return rules[method]
        return self.methods.get(method, False)


class ContentNegotiationConfig(BaseModel):
    """Accept and Content-Type whitelists per controller."""

    accept_whitelist: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    content_type_whitelist: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "ignore"}


class MergedConfig(BaseModel):
    """
    Canonical configuration of one module.

    Structural keys come from the module's runtime configuration;
    ``documentation`` is the result of merging the runtime configuration's
    documentation block with the module's documentation file.
    """

    module: str
    routes: Dict[str, RouteConfig] = Field(default_factory=dict)
    rest: Dict[str, RestControllerConfig] = Field(default_factory=dict)
    rpc: Dict[str, RpcControllerConfig] = Field(default_factory=dict)
    content_negotiation: ContentNegotiationConfig = Field(default_factory=ContentNegotiationConfig)
    content_validation: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    input_filter_specs: Dict[str, Any] = Field(default_factory=dict)
    authorization: Dict[str, AuthorizationPolicy] = Field(default_factory=dict)
    documentation: Dict[str, ControllerDocumentation] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def has_api_configuration(self) -> bool:
        return bool(self.rest or self.rpc)

    def controller_version(self, controller: str) -> Optional[str]:
        """Version parsed from ``<Module>.V<version>.`` controller names."""
        match = re.match(rf"^{re.escape(self.module)}\.V(?P<version>[^.]+)\.", controller)
        return match.group("version") if match else None

    def versions(self) -> List[str]:
        """Declared versions, ascending numerically."""
        found: List[str] = []
        for controller in self.controller_names():
            version = self.controller_version(controller)
            if version is not None and version not in found:
                found.append(version)
        return sorted(found, key=lambda v: (0, int(v), v) if v.isdigit() else (1, 0, v))

    def controller_names(self) -> Iterable[str]:
        yield from self.rest
        yield from self.rpc

    def controllers_for_version(self, version: int) -> List[str]:
        """Controllers of a version: REST first, then RPC, each in declaration order."""
        return [
            controller
            for controller in self.controller_names()
            if self.controller_version(controller) == str(version)
        ]

    def get_route(self, route_name: Optional[str]) -> RouteConfig:
        if route_name is None:
            return RouteConfig()
        return self.routes.get(route_name, RouteConfig())

    def get_documentation(self, controller: str) -> ControllerDocumentation:
        return self.documentation.get(controller, ControllerDocumentation())

    def get_authorization(self, controller: str) -> AuthorizationPolicy:
        return self.authorization.get(controller, AuthorizationPolicy())
