"""
Methods registry for automatic engine discovery.

This module provides automatic registration of computation engines by
introspecting BaseEngine subclasses in the anthro.methods submodules.
"""

from typing import Dict, Type
from .base import BaseEngine


# Import engine modules to register subclasses
from .lookup import engine as lookup_engine
from .approximation import engine as approximation_engine


def _build_registry() -> Dict[str, Type[BaseEngine]]:
    """Build the registry by discovering BaseEngine subclasses."""
    registry = {}
    for cls in BaseEngine.__subclasses__():
        # Derive method name from class name: LookupEngine -> 'lookup'
        method_name = cls.__name__.replace("Engine", "").lower()
        registry[method_name] = cls
    return registry


# Global registry instance
registry = _build_registry()

__all__ = ["registry", "lookup_engine", "approximation_engine"]
