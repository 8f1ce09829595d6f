"""Shared Pydantic models for API documentation."""

from .documentation import (
    Api,
    Field,
    HttpMethod,
    Operation,
    Service,
    ServiceKind,
    StatusCode,
)

__all__ = [
    "Api",
    "Field",
    "HttpMethod",
    "Operation",
    "Service",
    "ServiceKind",
    "StatusCode",
]
