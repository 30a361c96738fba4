"""
State machine core: evaluates a TransitionTable against one state cell.

The core owns no state. It reads and writes the authoritative state through
an accessor/mutator pair supplied by the controller, and runs actions
through two callables:

- action_runner(operation_name, context): runs a named operation
- on_entry(context): the universal entry action (persist + notify)

Firing order (strict, sequential):
    1. No rule for (state, trigger) → IllegalTransitionError, nothing runs
    2. Exit action of the current state
    3. State mutation
    4. Trigger-specific entry action of the destination, then on_entry

Failures in steps 2 and 4 are captured as SideEffectFailure entries and do
not reject the transition. Step 4 runs in a shielded task: once the state
has moved, cancelling the caller cannot skip persistence.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from rework_backend.exceptions import IllegalTransitionError, ReworkException
from rework_backend.models.machine import MachineContext, MachineState, MachineTrigger
from rework_backend.models.outcome import ActionStage, SideEffectFailure
from rework_backend.services.state_machines.transition_table import Transition, TransitionTable

logger = logging.getLogger(__name__)

ActionRunner = Callable[[str, MachineContext], Awaitable[None]]
EntryHook = Callable[[MachineContext], Awaitable[None]]


@dataclass
class FireResult:
    """What happened during one fire() call."""
    source: MachineState
    destination: MachineState
    trigger: MachineTrigger
    failures: list[SideEffectFailure] = field(default_factory=list)


class StateMachine:
    """
    Transition table evaluator bound to one state cell.

    Attributes:
        table: Static transition table
        station_id: Entity the machine runs for (log and error context)
    """

    def __init__(
        self,
        table: TransitionTable,
        state_accessor: Callable[[], MachineState],
        state_mutator: Callable[[MachineState], None],
        action_runner: ActionRunner,
        on_entry: EntryHook,
        station_id: int = None
    ):
        self.table = table
        self.station_id = station_id
        self._get_state = state_accessor
        self._set_state = state_mutator
        self._action_runner = action_runner
        self._on_entry = on_entry

    @property
    def state(self) -> MachineState:
        return self._get_state()

    def can_fire(self, trigger: MachineTrigger) -> bool:
        """True iff trigger is legal from the current state. No side effects."""
        return self.table.can_fire(self._get_state(), trigger)

    def permitted_triggers(self) -> list[MachineTrigger]:
        return self.table.permitted_triggers(self._get_state())

    async def fire(self, trigger: MachineTrigger, context: MachineContext) -> FireResult:
        """
        Fire trigger from the current state.

        Args:
            trigger: Trigger to fire
            context: Per-trigger context, shared by every action of this call

        Returns:
            FireResult with source, destination and captured failures

        Raises:
            IllegalTransitionError: If no rule matches. State is unchanged.
            asyncio.CancelledError: If cancelled. When this happens after the
                state mutation, the entry phase has completed before it is raised.
        """
        source = self._get_state()
        transition = self.table.rule(source, trigger)

        if transition is None:
            raise IllegalTransitionError(
                station_id=self.station_id,
                current_state=source.value,
                trigger=trigger.value,
                permitted_triggers=[t.value for t in self.table.permitted_triggers(source)]
            )

        failures: list[SideEffectFailure] = []

        exit_action = self.table.exit_action(source)
        if exit_action:
            await self._run_captured(
                ActionStage.EXIT,
                exit_action,
                lambda: self._action_runner(exit_action, context),
                failures
            )

        self._set_state(transition.destination)
        context.current_state = transition.destination

        entering = asyncio.ensure_future(self._enter(transition, context, failures))
        try:
            await asyncio.shield(entering)
        except asyncio.CancelledError:
            logger.warning(
                f"Trigger {trigger.value} on station {self.station_id} cancelled after entering "
                f"{transition.destination.value}; completing entry actions before cancelling"
            )
            await _wait_uncancellable(entering)
            raise

        return FireResult(
            source=source,
            destination=transition.destination,
            trigger=trigger,
            failures=failures
        )

    async def _enter(
        self,
        transition: Transition,
        context: MachineContext,
        failures: list[SideEffectFailure]
    ) -> None:
        entry_action = self.table.entry_action(transition.destination, transition.trigger)
        if entry_action:
            await self._run_captured(
                ActionStage.ENTRY,
                entry_action,
                lambda: self._action_runner(entry_action, context),
                failures
            )

        await self._run_captured(
            ActionStage.PERSIST_AND_NOTIFY,
            "persist_and_notify",
            lambda: self._on_entry(context),
            failures
        )

    async def _run_captured(
        self,
        stage: ActionStage,
        action: str,
        call: Callable[[], Awaitable[None]],
        failures: list[SideEffectFailure]
    ) -> None:
        try:
            await call()
        except Exception as e:
            if isinstance(e, ReworkException):
                error_code, data = e.error_code, e.data
            else:
                error_code, data = "UNEXPECTED_ERROR", {"exception": type(e).__name__}

            logger.error(
                f"{stage.value} action '{action}' failed on station {self.station_id}: {e}",
                exc_info=not isinstance(e, ReworkException)
            )
            failures.append(SideEffectFailure(
                stage=stage,
                action=action,
                error=error_code,
                message=str(e),
                data=data
            ))


async def _wait_uncancellable(task: "asyncio.Future") -> None:
    """Wait for task to finish, ignoring further cancellation of the caller."""
    while not task.done():
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            continue
