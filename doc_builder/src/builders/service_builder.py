"""Construction of documented services.

A REST controller yields collection operations (listing, creation) and
entity operations (single resource) for exactly the methods it declares.
An RPC controller yields one operation per declared method. Field groups
come from the controller's content-validation entry, one group per key.
"""

from typing import Dict, List, Optional, Tuple

import structlog

from doc_builder.src.aggregation.controller_config import (
    COLLECTION_SCOPE,
    ENTITY_SCOPE,
    MergedConfig,
    RestControllerConfig,
    RpcControllerConfig,
)
from doc_builder.src.builders.operation_builder import OperationBuilder
from doc_builder.src.exceptions import MalformedFieldSpecError
from doc_builder.src.transformers.field_flattener import FieldTreeFlattener
from shared.models.documentation import Field, Operation, Service, ServiceKind

logger = structlog.get_logger(__name__)

QUERY_GROUP = "query"


def default_action_name(service_name: str) -> str:
    """RPC action implied by a service name: ``PingServer`` -> ``pingServer``."""
    return service_name[:1].lower() + service_name[1:]


class ServiceBuilder:
    """Builds a Service for one REST or RPC controller."""

    def __init__(
        self,
        operation_builder: Optional[OperationBuilder] = None,
        flattener: Optional[FieldTreeFlattener] = None,
    ):
        self.operation_builder = operation_builder or OperationBuilder()
        self.flattener = flattener or FieldTreeFlattener()

    def determine_kind(self, config: MergedConfig, controller: str) -> ServiceKind:
        """
        Classify a controller.

        REST controllers that declare entity methods and an identifier which
        their route actually carries address single entities; other REST
        controllers only address the collection. Everything else is RPC.
        """
        rest = config.rest.get(controller)
        if rest is None:
            return ServiceKind.RPC

        identifier = rest.route_identifier_name
        route = config.get_route(rest.route_name)
        if rest.entity_http_methods and identifier and (
            not route.route or route.has_parameter(identifier)
        ):
            return ServiceKind.REST_ENTITY
        return ServiceKind.REST_COLLECTION

    def build(self, config: MergedConfig, controller: str, api_version: int) -> Service:
        """
        Build the service of a controller.

        Args:
            config: Merged configuration of the controller's module
            controller: Fully-qualified controller name
            api_version: Version the service is documented for

        Returns:
            The service

        Raises:
            KeyError: If the controller is neither a REST nor an RPC controller
            MalformedFieldSpecError: If one of its field groups is malformed
        """
        kind = self.determine_kind(config, controller)
        if kind == ServiceKind.RPC:
            declaration = config.rpc[controller]
            operations, entity_operations = self._rpc_operations(config, declaration), []
            route_identifier_name = None
        else:
            declaration = config.rest[controller]
            operations, entity_operations = self._rest_operations(config, declaration)
            route_identifier_name = declaration.route_identifier_name

        route = config.get_route(declaration.route_name)
        negotiation = config.content_negotiation

        service = Service(
            name=declaration.service_name,
            description=config.get_documentation(controller).description,
            kind=kind,
            api_name=config.module,
            api_version=api_version,
            route=route.documentation_route,
            route_identifier_name=route_identifier_name,
            operations=tuple(operations),
            entity_operations=tuple(entity_operations),
            fields=self.build_fields(config, controller),
            request_accept_types=tuple(negotiation.accept_whitelist.get(controller, ())),
            request_content_types=tuple(negotiation.content_type_whitelist.get(controller, ())),
        )

        logger.debug(
            "service_built",
            service=service.name,
            kind=kind.value,
            operations=len(service.operations),
            entity_operations=len(service.entity_operations),
            field_groups=service.field_groups,
        )
        return service

    def build_fields(self, config: MergedConfig, controller: str) -> Dict[str, Tuple[Field, ...]]:
        """Flatten every field group declared for the controller, in declaration order."""
        fields: Dict[str, Tuple[Field, ...]] = {}

        for group, spec_name in config.content_validation.get(controller, {}).items():
            if spec_name not in config.input_filter_specs:
                logger.warning(
                    "field_group_skipped",
                    controller=controller,
                    group=group,
                    input_filter=spec_name,
                    reason="input filter not defined",
                )
                continue
            try:
                fields[group] = tuple(self.flattener.flatten_config(config.input_filter_specs[spec_name]))
            except MalformedFieldSpecError as e:
                logger.error(
                    "field_spec_malformed",
                    controller=controller,
                    group=group,
                    input_filter=spec_name,
                    path=e.path,
                    reason=e.reason,
                )
                raise

        rest = config.rest.get(controller)
        if QUERY_GROUP not in fields and rest is not None and rest.collection_query_whitelist:
            fields[QUERY_GROUP] = tuple(Field(name=name) for name in rest.collection_query_whitelist)

        return fields

    def _rest_operations(
        self,
        config: MergedConfig,
        rest: RestControllerConfig,
    ) -> Tuple[List[Operation], List[Operation]]:
        documentation = config.get_documentation(rest.controller)
        policy = config.get_authorization(rest.controller)

        operations = [
            self.operation_builder.build(
                documentation, policy, method, is_entity_operation=False, scope=COLLECTION_SCOPE
            )
            for method in rest.collection_http_methods
        ]
        entity_operations = [
            self.operation_builder.build(
                documentation, policy, method, is_entity_operation=True, scope=ENTITY_SCOPE
            )
            for method in rest.entity_http_methods
        ]
        return operations, entity_operations

    def _rpc_operations(self, config: MergedConfig, rpc: RpcControllerConfig) -> List[Operation]:
        route = config.get_route(rpc.route_name)
        action = route.defaults.get("action") or default_action_name(rpc.service_name)
        documentation = config.get_documentation(rpc.controller)
        policy = config.get_authorization(rpc.controller)

        # An optional parameter segment means the endpoint can address a single item
        is_entity_operation = route.has_optional_segments

        return [
            self.operation_builder.build(
                documentation, policy, method, is_entity_operation=is_entity_operation, action=action
            )
            for method in rpc.http_methods
        ]
