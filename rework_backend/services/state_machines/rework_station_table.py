"""
Transition table of the choco rework station workflow.

Production cycle:
    NoOrder → WaitPallet → ScanPallet → ScanTank → EmptyBigbag → ChooseTank → NoOrder

Lifecycle loops on top of the cycle:
- Pause / Resume: any operating state → Paused → WaitPallet
- DetectError / ResolveError: operating states and Paused → Error → NoOrder
- BeginMaintenance / EndMaintenance: NoOrder, Paused, Error → Maintenance → NoOrder
- Shutdown / Start: NoOrder, Maintenance → ShuttingDown → WaitPallet

Resume always restarts from WaitPallet: the table is fixed per state and
does not remember where the cycle was interrupted.
"""
from rework_backend.models.machine import MachineState as S
from rework_backend.models.machine import MachineTrigger as T
from rework_backend.services.state_machines.transition_table import Transition, TransitionTable

OPERATING_STATES = (
    S.WAIT_PALLET,
    S.SCAN_PALLET,
    S.SCAN_TANK,
    S.EMPTY_BIGBAG,
    S.CHOOSE_TANK,
)

_CYCLE = (
    Transition(S.NO_ORDER, T.START, S.WAIT_PALLET),
    Transition(S.WAIT_PALLET, T.PALLET_ARRIVED, S.SCAN_PALLET),
    Transition(S.SCAN_PALLET, T.PALLET_SCANNED, S.SCAN_TANK),
    Transition(S.SCAN_TANK, T.TANK_SCANNED, S.EMPTY_BIGBAG),
    Transition(S.EMPTY_BIGBAG, T.BIGBAG_EMPTIED, S.CHOOSE_TANK),
    Transition(S.CHOOSE_TANK, T.TANK_CHOSEN, S.NO_ORDER),
)

_PAUSE = tuple(
    Transition(state, T.PAUSE, S.PAUSED) for state in OPERATING_STATES
) + (
    Transition(S.PAUSED, T.RESUME, S.WAIT_PALLET),
)

_ERRORS = tuple(
    Transition(state, T.DETECT_ERROR, S.ERROR) for state in OPERATING_STATES + (S.PAUSED,)
) + (
    Transition(S.ERROR, T.RESOLVE_ERROR, S.NO_ORDER),
)

_MAINTENANCE = (
    Transition(S.NO_ORDER, T.BEGIN_MAINTENANCE, S.MAINTENANCE),
    Transition(S.PAUSED, T.BEGIN_MAINTENANCE, S.MAINTENANCE),
    Transition(S.ERROR, T.BEGIN_MAINTENANCE, S.MAINTENANCE),
    Transition(S.MAINTENANCE, T.END_MAINTENANCE, S.NO_ORDER),
)

_SHUTDOWN = (
    Transition(S.NO_ORDER, T.SHUTDOWN, S.SHUTTING_DOWN),
    Transition(S.MAINTENANCE, T.SHUTDOWN, S.SHUTTING_DOWN),
    Transition(S.SHUTTING_DOWN, T.START, S.WAIT_PALLET),
)


REWORK_STATION_TABLE = TransitionTable(
    initial_state=S.NO_ORDER,
    transitions=_CYCLE + _PAUSE + _ERRORS + _MAINTENANCE + _SHUTDOWN,
    exit_actions={
        # The pallet label is read when the scan step is left
        S.SCAN_PALLET: "scan_pallet",
    },
    entry_actions={
        (S.WAIT_PALLET, T.START): "start",
        (S.SCAN_PALLET, T.PALLET_ARRIVED): "pallet_arrived",
        (S.EMPTY_BIGBAG, T.TANK_SCANNED): "scan_tank",
        (S.CHOOSE_TANK, T.BIGBAG_EMPTIED): "bigbag_emptied",
        (S.NO_ORDER, T.TANK_CHOSEN): "tank_chosen",
        (S.PAUSED, T.PAUSE): "pause",
        (S.WAIT_PALLET, T.RESUME): "resume",
        (S.NO_ORDER, T.RESOLVE_ERROR): "initialize",
        (S.NO_ORDER, T.END_MAINTENANCE): "initialize",
        (S.SHUTTING_DOWN, T.SHUTDOWN): "shutdown",
    },
)
