"""Parsing and merging of per-module configuration."""

from .config_aggregator import ConfigAggregator
from .controller_config import MergedConfig

__all__ = ["ConfigAggregator", "MergedConfig"]
