"""Structured logging module using structlog."""

from .structured_logger import configure_logging, log_context

__all__ = [
    "configure_logging",
    "log_context",
]
