"""
Base class for operation handlers.

An operation handler performs the domain work of one transition step
(actuating equipment, talking to a scanner, ...). Handlers are unrelated to
persistence and notification, which the controller does after them.
"""
from abc import ABC, abstractmethod
from typing import ClassVar

from rework_backend.models.machine import MachineContext


class OperationHandler(ABC):
    """
    One named, side-effecting action run during a transition.

    Handlers are created per action by the OperationRegistry and closed when
    the action finishes, so an instance may hold per-invocation resources.

    Subclasses must define:
    - name: stable operation name referenced by transition tables
    - execute(context): the operation itself (may raise)
    """

    name: ClassVar[str]

    @abstractmethod
    async def execute(self, context: MachineContext) -> None:
        """
        Run the operation.

        Args:
            context: Context of the trigger that caused the transition
        """

    async def aclose(self) -> None:
        """Release per-invocation resources. Default: nothing to release."""
        return None
