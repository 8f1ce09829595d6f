"""Builders for operations and services."""

from .operation_builder import OperationBuilder
from .service_builder import ServiceBuilder

__all__ = ["OperationBuilder", "ServiceBuilder"]
