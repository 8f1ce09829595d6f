"""Documentation model shared by the builder and any renderer.

The graph is Api -> Service -> Operation / Field. Every model is frozen:
instances are built once per factory call and never mutated afterwards.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field as ModelField


class HttpMethod(str, Enum):
    """HTTP methods an operation can be documented for."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ServiceKind(str, Enum):
    """Shape of a documented service."""

    REST_ENTITY = "rest_entity"
    REST_COLLECTION = "rest_collection"
    RPC = "rpc"


class StatusCode(BaseModel):
    """A documented response status code."""

    code: str = ModelField(..., description="HTTP status code")
    message: str = ModelField(..., description="Reason phrase")

    model_config = {"frozen": True}


class Field(BaseModel):
    """A single (possibly path-qualified) input field."""

    name: str = ModelField(..., min_length=1, description="Field name, e.g. albums[]/title")
    type: str = ModelField("string", description="Declared data type")
    required: bool = ModelField(False, description="Whether the field is required")
    description: str = ModelField("", description="Human readable description")
    example: Optional[Any] = ModelField(None, description="Example value")

    model_config = {"frozen": True}


class Operation(BaseModel):
    """One HTTP method on a service."""

    http_method: HttpMethod
    description: str = ""
    request_description: str = ""
    response_description: str = ""
    requires_authorization: bool = False
    response_status_codes: Tuple[StatusCode, ...] = ()

    model_config = {"frozen": True}

    def get_status_codes(self) -> List[str]:
        """Return just the code strings, in documented order."""
        return [status.code for status in self.response_status_codes]


class Service(BaseModel):
    """A REST or RPC service and everything documented about it."""

    name: str
    description: str = ""
    kind: ServiceKind
    api_name: str
    api_version: int
    route: str = ""
    route_identifier_name: Optional[str] = None
    operations: Tuple[Operation, ...] = ()
    entity_operations: Tuple[Operation, ...] = ()
    fields: Dict[str, Tuple[Field, ...]] = ModelField(default_factory=dict)
    request_accept_types: Tuple[str, ...] = ()
    request_content_types: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def field_groups(self) -> List[str]:
        return list(self.fields)

    def get_fields(self, group: str) -> List[Field]:
        """Fields of a group; an undeclared group has no fields."""
        return list(self.fields.get(group, ()))

    def get_operations(self) -> List[Operation]:
        return list(self.operations)

    def get_entity_operations(self) -> List[Operation]:
        return list(self.entity_operations)


class Api(BaseModel):
    """All services of one module at one version."""

    name: str = ModelField(..., min_length=1, description="Module name")
    version: int = ModelField(..., gt=0, description="API version")
    services: Tuple[Service, ...] = ()

    model_config = {"frozen": True}

    def get_service(self, name: str) -> Optional[Service]:
        for service in self.services:
            if service.name == name:
                return service
        return None
