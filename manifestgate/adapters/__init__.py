"""Adapters — bindings for the external tools the pipeline drives.

Public re-exports for convenient access.
"""

from manifestgate.adapters.base import Adapter
from manifestgate.adapters.mock import MockAdapter
from manifestgate.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "MockAdapter",
    "default_registry",
]
