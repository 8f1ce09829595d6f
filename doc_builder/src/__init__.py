"""API documentation builder.

Introspects the REST and RPC controller configuration of API modules and
synthesizes the Api -> Service -> Operation -> Field documentation model.
"""

__version__ = "0.1.0"
