"""
Mermaid rendering of a transition table.

Produces a ``stateDiagram-v2`` definition for documentation and the
diagram endpoint:

    stateDiagram-v2
        [*] --> NoOrder
        NoOrder --> WaitPallet : Start / start
        ScanPallet : exit / scan_pallet
        ...

Entry actions are appended to the edge label of the transition that runs
them; exit actions are listed as state descriptions.
"""
from typing import Optional

from rework_backend.models.machine import MachineState, encode_state
from rework_backend.services.state_machines.transition_table import TransitionTable


def render_mermaid(
    table: TransitionTable,
    current_state: Optional[MachineState] = None,
    title: Optional[str] = None
) -> str:
    """
    Render table as a Mermaid state diagram.

    Args:
        table: Transition table to render
        current_state: Highlighted with a "current" class when given
        title: Optional title front matter

    Returns:
        Complete Mermaid diagram definition
    """
    lines: list[str] = []

    if title:
        lines.append("---")
        lines.append(f"title: {title}")
        lines.append("---")

    lines.append("stateDiagram-v2")
    lines.append(f"    [*] --> {table.initial_state.value}")

    for state in MachineState:
        lines.append(f"    {state.value} : {encode_state(state)}")
        exit_action = table.exit_action(state)
        if exit_action:
            lines.append(f"    {state.value} : exit / {exit_action}")

    for transition in table.transitions:
        label = transition.trigger.value
        entry_action = table.entry_action(transition.destination, transition.trigger)
        if entry_action:
            label = f"{label} / {entry_action}"
        lines.append(f"    {transition.source.value} --> {transition.destination.value} : {label}")

    if current_state is not None:
        lines.append("    classDef current fill:#fff3e0,stroke:#e65100")
        lines.append(f"    class {current_state.value} current")

    return "\n".join(lines) + "\n"
