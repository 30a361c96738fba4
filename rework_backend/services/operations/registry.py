"""
Explicit registry of operation handlers.

Maps an operation name to a factory building a fresh handler. Transition
tables reference operations by name; the controller resolves them here at
the moment a transition needs one, so each action gets its own handler
instance for the duration of the action.

Usage:
    registry = build_default_registry(delay_seconds=0.5)
    async with registry.scope("start") as handler:
        await handler.execute(context)
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from rework_backend.exceptions import UnknownOperationError
from rework_backend.services.operations.base import OperationHandler
from rework_backend.services.operations.handlers import DEFAULT_HANDLERS

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[], OperationHandler]


class OperationRegistry:
    """Operation name → handler factory."""

    def __init__(self):
        self._factories: dict[str, HandlerFactory] = {}

    def register(self, name: str, factory: HandlerFactory) -> None:
        """
        Register a handler factory under name.

        Raises:
            ValueError: If name is already registered
        """
        if name in self._factories:
            raise ValueError(f"Operation '{name}' is already registered")
        self._factories[name] = factory

    def names(self) -> set[str]:
        return set(self._factories)

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def resolve(self, name: str) -> OperationHandler:
        """
        Build a new handler instance for name.

        Raises:
            UnknownOperationError: If no factory is registered for name
        """
        try:
            factory = self._factories[name]
        except KeyError:
            raise UnknownOperationError(name) from None
        return factory()

    @asynccontextmanager
    async def scope(self, name: str) -> AsyncIterator[OperationHandler]:
        """Resolve a handler and close it when the block exits."""
        handler = self.resolve(name)
        try:
            yield handler
        finally:
            try:
                await handler.aclose()
            except Exception as e:
                logger.warning(f"Error closing operation handler '{name}': {e}")


def build_default_registry(delay_seconds: float = 0.0) -> OperationRegistry:
    """
    Registry with every handler of the rework station workflow.

    Args:
        delay_seconds: Simulated duration of each physical operation
    """
    registry = OperationRegistry()
    for handler_cls in DEFAULT_HANDLERS:
        registry.register(handler_cls.name, lambda cls=handler_cls: cls(delay_seconds=delay_seconds))
    return registry
