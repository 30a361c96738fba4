"""
Explicit transition table for station state machines.

A TransitionTable is plain, immutable data: the (source, trigger) →
destination rules, the exit action of a state and the trigger-specific
entry actions of a state. The universal entry action (persist + notify) is
not part of the table; every state has it and the controller supplies it.

Actions are referenced by operation name and resolved through the
OperationRegistry when a transition needs them.

Usage:
    table = TransitionTable(
        initial_state=MachineState.NO_ORDER,
        transitions=(
            Transition(MachineState.NO_ORDER, MachineTrigger.START, MachineState.WAIT_PALLET),
        ),
        entry_actions={(MachineState.WAIT_PALLET, MachineTrigger.START): "start"},
    )
    table.validate()
    table.destination(MachineState.NO_ORDER, MachineTrigger.START)  # WAIT_PALLET
"""
from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from rework_backend.exceptions import TransitionTableError
from rework_backend.models.machine import (
    MachineInfo,
    MachineState,
    MachineTrigger,
    StateInfo,
    TransitionInfo,
    encode_state,
)


@dataclass(frozen=True)
class Transition:
    """Immutable rule: source --trigger--> destination."""
    source: MachineState
    trigger: MachineTrigger
    destination: MachineState


@dataclass(frozen=True)
class TransitionTable:
    """
    Static transition table of one entity type.

    Attributes:
        initial_state: State of an entity with no persisted record
        transitions: All rules, in declaration order
        exit_actions: state → operation run when leaving it
        entry_actions: (destination, trigger) → operation run when entering
            destination through trigger
    """
    initial_state: MachineState
    transitions: tuple[Transition, ...]
    exit_actions: Mapping[MachineState, str] = field(default_factory=dict)
    entry_actions: Mapping[tuple[MachineState, MachineTrigger], str] = field(default_factory=dict)

    def __post_init__(self):
        rules: dict[tuple[MachineState, MachineTrigger], Transition] = {}
        duplicates = []
        for transition in self.transitions:
            key = (transition.source, transition.trigger)
            if key in rules:
                duplicates.append(f"{key[0].value} + {key[1].value}")
            rules[key] = transition

        if duplicates:
            raise TransitionTableError(
                "Duplicate transitions for the same (state, trigger)",
                problems=duplicates
            )

        # Frozen dataclass: bypass __setattr__ for derived read-only views
        object.__setattr__(self, "transitions", tuple(self.transitions))
        object.__setattr__(self, "exit_actions", MappingProxyType(dict(self.exit_actions)))
        object.__setattr__(self, "entry_actions", MappingProxyType(dict(self.entry_actions)))
        object.__setattr__(self, "_rules", MappingProxyType(rules))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def rule(self, state: MachineState, trigger: MachineTrigger) -> Optional[Transition]:
        return self._rules.get((state, trigger))

    def can_fire(self, state: MachineState, trigger: MachineTrigger) -> bool:
        """True iff a rule exists for (state, trigger)."""
        return (state, trigger) in self._rules

    def destination(self, state: MachineState, trigger: MachineTrigger) -> Optional[MachineState]:
        transition = self.rule(state, trigger)
        return transition.destination if transition else None

    def permitted_triggers(self, state: MachineState) -> list[MachineTrigger]:
        """Triggers legal from state, in MachineTrigger declaration order."""
        return [trigger for trigger in MachineTrigger if (state, trigger) in self._rules]

    def exit_action(self, state: MachineState) -> Optional[str]:
        return self.exit_actions.get(state)

    def entry_action(self, state: MachineState, trigger: MachineTrigger) -> Optional[str]:
        return self.entry_actions.get((state, trigger))

    def operation_names(self) -> set[str]:
        """Every operation name referenced by the table."""
        return set(self.exit_actions.values()) | set(self.entry_actions.values())

    def reachable_states(self) -> set[MachineState]:
        """States reachable from the initial state (breadth-first)."""
        seen = {self.initial_state}
        queue = deque([self.initial_state])
        while queue:
            state = queue.popleft()
            for transition in self.transitions:
                if transition.source == state and transition.destination not in seen:
                    seen.add(transition.destination)
                    queue.append(transition.destination)
        return seen

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, known_operations: Optional[Iterable[str]] = None) -> None:
        """
        Check the table for structural errors.

        Rules:
        - Every MachineState is reachable from the initial state
        - Every entry action is keyed by a (destination, trigger) pair that
          some transition actually produces
        - Every referenced operation is registered (when known_operations
          is given)

        Args:
            known_operations: Names registered in the OperationRegistry

        Raises:
            TransitionTableError: Listing every problem found
        """
        problems = []

        unreachable = [state.value for state in MachineState if state not in self.reachable_states()]
        if unreachable:
            problems.append(f"Unreachable states: {', '.join(unreachable)}")

        produced = {(t.destination, t.trigger) for t in self.transitions}
        for (state, trigger), operation in self.entry_actions.items():
            if (state, trigger) not in produced:
                problems.append(
                    f"Entry action '{operation}' bound to {state.value} via {trigger.value}, "
                    "but no transition enters it that way"
                )

        if known_operations is not None:
            known = set(known_operations)
            missing = sorted(self.operation_names() - known)
            if missing:
                problems.append(f"Unregistered operations: {', '.join(missing)}")

        if problems:
            raise TransitionTableError("Invalid transition table", problems=problems)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def info(self) -> MachineInfo:
        """Static description of the table (no I/O)."""
        states = []
        for state in MachineState:
            states.append(StateInfo(
                state=state,
                code=encode_state(state),
                exit_action=self.exit_action(state),
                entry_actions={
                    trigger: operation
                    for (target, trigger), operation in self.entry_actions.items()
                    if target == state
                },
                permitted_triggers=self.permitted_triggers(state)
            ))

        return MachineInfo(
            initial_state=self.initial_state,
            states=states,
            transitions=[
                TransitionInfo(source=t.source, trigger=t.trigger, destination=t.destination)
                for t in self.transitions
            ]
        )
