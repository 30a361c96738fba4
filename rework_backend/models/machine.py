"""
State machine vocabulary for choco rework stations.

Defines the closed set of states and triggers, the bijective mapping
between states and their persisted status codes, the per-trigger
MachineContext handed to operation handlers, and the introspection models
returned by the info endpoint.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from rework_backend.exceptions import UnknownPersistedStateError


class MachineState(str, Enum):
    """
    Lifecycle states of a rework station.

    NO_ORDER: No order assigned to the station (initial state)
    WAIT_PALLET: Waiting for a pallet from the warehouse
    SCAN_PALLET: Waiting for the pallet to be scanned
    SCAN_TANK: Waiting for a tank to be scanned
    EMPTY_BIGBAG: Waiting for the bigbag to be emptied
    CHOOSE_TANK: Waiting for a tank to be chosen
    PAUSED: Work interrupted by the operator
    ERROR: Station reported a fault
    MAINTENANCE: Station under maintenance
    SHUTTING_DOWN: Station is being taken out of service
    """
    NO_ORDER = "NoOrder"
    WAIT_PALLET = "WaitPallet"
    SCAN_PALLET = "ScanPallet"
    SCAN_TANK = "ScanTank"
    EMPTY_BIGBAG = "EmptyBigbag"
    CHOOSE_TANK = "ChooseTank"
    PAUSED = "Paused"
    ERROR = "Error"
    MAINTENANCE = "Maintenance"
    SHUTTING_DOWN = "ShuttingDown"


class MachineTrigger(str, Enum):
    """Events that may request a state change. Never persisted."""
    START = "Start"
    PAUSE = "Pause"
    RESUME = "Resume"
    PALLET_ARRIVED = "PalletArrived"
    PALLET_SCANNED = "PalletScanned"
    TANK_SCANNED = "TankScanned"
    BIGBAG_EMPTIED = "BigbagEmptied"
    TANK_CHOSEN = "TankChosen"
    DETECT_ERROR = "DetectError"
    RESOLVE_ERROR = "ResolveError"
    BEGIN_MAINTENANCE = "BeginMaintenance"
    END_MAINTENANCE = "EndMaintenance"
    SHUTDOWN = "Shutdown"


# Persisted status codes. Must stay in bijection with MachineState.
STATE_CODES: dict[MachineState, str] = {
    MachineState.NO_ORDER: "no_order",
    MachineState.WAIT_PALLET: "wait_pallet",
    MachineState.SCAN_PALLET: "scan_pallet",
    MachineState.SCAN_TANK: "scan_tank",
    MachineState.EMPTY_BIGBAG: "empty_bigbag",
    MachineState.CHOOSE_TANK: "choose_tank",
    MachineState.PAUSED: "paused",
    MachineState.ERROR: "error",
    MachineState.MAINTENANCE: "maintenance",
    MachineState.SHUTTING_DOWN: "shutting_down",
}

_STATES_BY_CODE: dict[str, MachineState] = {code: state for state, code in STATE_CODES.items()}

if set(STATE_CODES) != set(MachineState) or len(_STATES_BY_CODE) != len(STATE_CODES):
    raise RuntimeError("STATE_CODES must map every MachineState to a distinct code")


def encode_state(state: MachineState) -> str:
    """Return the persisted status code of a state (e.g. ScanPallet → "scan_pallet")."""
    return STATE_CODES[state]


def decode_state(status: Optional[str], station_id: Optional[int] = None) -> MachineState:
    """
    Decode a persisted status code into a MachineState.

    Args:
        status: Stored status code
        station_id: Station the code was read for (error context only)

    Returns:
        The matching MachineState

    Raises:
        UnknownPersistedStateError: If the code maps to no state. Never defaults.
    """
    try:
        return _STATES_BY_CODE[status]
    except KeyError:
        raise UnknownPersistedStateError(status, station_id=station_id) from None


def known_status_codes() -> list[str]:
    return list(STATE_CODES.values())


@dataclass
class MachineContext:
    """
    Context of a single fired trigger.

    Created by the controller for one trigger() call and handed to every
    action that runs during it. current_state is updated by the state
    machine once the state has been mutated, so exit actions see the source
    state and entry actions the destination.
    """
    station_id: int
    previous_state: MachineState
    current_state: MachineState
    trigger: MachineTrigger
    parameters: dict[str, Any] = field(default_factory=dict)


# ============================================================================
# INTROSPECTION MODELS
# ============================================================================


class TransitionInfo(BaseModel):
    """One (source, trigger) → destination rule."""
    source: MachineState
    trigger: MachineTrigger
    destination: MachineState


class StateInfo(BaseModel):
    """Static description of a state and the actions bound to it."""
    state: MachineState
    code: str = Field(..., description="Persisted status code", examples=["scan_pallet"])
    exit_action: Optional[str] = Field(None, description="Operation run when leaving the state")
    entry_actions: dict[MachineTrigger, str] = Field(
        default_factory=dict,
        description="Operation run when entering the state through a given trigger"
    )
    permitted_triggers: list[MachineTrigger] = Field(default_factory=list)


class MachineInfo(BaseModel):
    """Static table introspection used for diagnostics and visualization."""
    initial_state: MachineState
    states: list[StateInfo]
    transitions: list[TransitionInfo]
