"""
Errors raised while building documentation.

Missing optional data (descriptions, authorization policy, field groups)
never raises; these errors cover lookups that cannot succeed and field
specifications that cannot be flattened unambiguously. ``http_status`` is
the status an HTTP boundary should answer with.
"""

from typing import Optional, Union


class DocumentationError(Exception):
    """Base class for documentation builder errors."""

    http_status: int = 500


class ConfigNotFoundError(DocumentationError):
    """The requested module is unknown to the module system."""

    http_status = 404

    def __init__(self, module: str, detail: Optional[str] = None):
        self.module = module
        message = f"No configuration found for module '{module}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnknownApiError(DocumentationError):
    """The module exists but exposes nothing for the requested version."""

    http_status = 404

    def __init__(self, module: str, version: Union[int, str]):
        self.module = module
        self.version = version
        super().__init__(f"Module '{module}' has no API configuration for version {version}")


class UnknownServiceError(DocumentationError):
    """No REST or RPC controller carries the requested service name."""

    http_status = 404

    def __init__(self, module: str, version: int, service: str):
        self.module = module
        self.version = version
        self.service = service
        super().__init__(
            f"Service '{service}' not found in API '{module}' version {version}"
        )


class MalformedFieldSpecError(DocumentationError):
    """A field specification entry cannot be interpreted."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed field specification at '{path or '<root>'}': {reason}")
