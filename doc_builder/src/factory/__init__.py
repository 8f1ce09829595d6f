"""Api factory entry points."""

from .api_factory import ApiFactory, create_api_factory

__all__ = ["ApiFactory", "create_api_factory"]
