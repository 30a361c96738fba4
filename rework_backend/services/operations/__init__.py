"""
Operation handlers run during station transitions and their registry.
"""

from rework_backend.services.operations.base import OperationHandler
from rework_backend.services.operations.registry import OperationRegistry, build_default_registry

__all__ = ["OperationHandler", "OperationRegistry", "build_default_registry"]
