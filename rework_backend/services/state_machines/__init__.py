"""
State machines for station lifecycle management.

- transition_table: immutable (state, trigger) → state rules plus actions
- machine: StateMachine core evaluating a table against one state cell
- rework_station_table: the choco rework station workflow
- diagram: Mermaid rendering of a table
"""

from rework_backend.services.state_machines.transition_table import Transition, TransitionTable
from rework_backend.services.state_machines.machine import FireResult, StateMachine
from rework_backend.services.state_machines.rework_station_table import REWORK_STATION_TABLE

__all__ = [
    "Transition",
    "TransitionTable",
    "FireResult",
    "StateMachine",
    "REWORK_STATION_TABLE",
]
