"""Pure transforms from configuration fragments to model pieces."""

from .field_flattener import FieldTreeFlattener, parse_field_specs
from .status_codes import StatusCodeResolver

__all__ = ["FieldTreeFlattener", "StatusCodeResolver", "parse_field_specs"]
