"""Construction of documented operations."""

from typing import Optional

import structlog

from doc_builder.src.aggregation.controller_config import (
    AuthorizationPolicy,
    ControllerDocumentation,
)
from doc_builder.src.transformers.status_codes import StatusCodeResolver
from shared.models.documentation import HttpMethod, Operation

logger = structlog.get_logger(__name__)


class OperationBuilder:
    """Builds one Operation from a controller's documentation and policy."""

    def __init__(self, status_resolver: Optional[StatusCodeResolver] = None):
        self.status_resolver = status_resolver or StatusCodeResolver()

    def build(
        self,
        documentation: ControllerDocumentation,
        policy: AuthorizationPolicy,
        http_method: HttpMethod,
        is_entity_operation: bool,
        scope: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Operation:
        """
        Build an operation.

        Args:
            documentation: Documentation prose of the controller
            policy: Declared authorization of the controller
            http_method: HTTP method of the operation
            is_entity_operation: Whether the operation targets a single resource
            scope: "collection" or "entity" for REST operations, None for RPC
            action: RPC action name used for authorization lookup

        Returns:
            The operation, with status codes attached
        """
        method = HttpMethod(http_method)
        prose = documentation.for_method(method, scope)
        requires_authorization = bool(
            policy.requires_authorization(method, scope=scope, action=action)
        )

        operation = Operation(
            http_method=method,
            description=prose.description,
            request_description=prose.request,
            response_description=prose.response,
            requires_authorization=requires_authorization,
            response_status_codes=tuple(
                self.status_resolver.resolve(method, requires_authorization, is_entity_operation)
            ),
        )

        logger.debug(
            "operation_built",
            http_method=method.value,
            scope=scope,
            requires_authorization=requires_authorization,
            status_codes=operation.get_status_codes(),
        )
        return operation
