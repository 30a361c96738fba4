"""
Unit tests for TransitionTable and the rework station workflow table.

Tests validate:
- Production cycle and lifecycle destinations
- can_fire / permitted_triggers are pure lookups
- Duplicate rules and structural errors are rejected
- Introspection (info) mirrors the table
"""
import pytest

from rework_backend.exceptions import TransitionTableError
from rework_backend.models.machine import MachineState as S
from rework_backend.models.machine import MachineTrigger as T
from rework_backend.services.operations.registry import build_default_registry
from rework_backend.services.state_machines.rework_station_table import (
    OPERATING_STATES,
    REWORK_STATION_TABLE
)
from rework_backend.services.state_machines.transition_table import Transition, TransitionTable


@pytest.mark.parametrize("source,trigger,destination", [
    (S.NO_ORDER, T.START, S.WAIT_PALLET),
    (S.WAIT_PALLET, T.PALLET_ARRIVED, S.SCAN_PALLET),
    (S.SCAN_PALLET, T.PALLET_SCANNED, S.SCAN_TANK),
    (S.SCAN_TANK, T.TANK_SCANNED, S.EMPTY_BIGBAG),
    (S.EMPTY_BIGBAG, T.BIGBAG_EMPTIED, S.CHOOSE_TANK),
    (S.CHOOSE_TANK, T.TANK_CHOSEN, S.NO_ORDER),
])
def test_production_cycle(source, trigger, destination):
    assert REWORK_STATION_TABLE.destination(source, trigger) == destination


@pytest.mark.parametrize("state", OPERATING_STATES)
def test_pause_and_error_from_every_operating_state(state):
    assert REWORK_STATION_TABLE.destination(state, T.PAUSE) == S.PAUSED
    assert REWORK_STATION_TABLE.destination(state, T.DETECT_ERROR) == S.ERROR


def test_resume_restarts_at_wait_pallet():
    assert REWORK_STATION_TABLE.destination(S.PAUSED, T.RESUME) == S.WAIT_PALLET


def test_lifecycle_loops_return_to_no_order():
    assert REWORK_STATION_TABLE.destination(S.ERROR, T.RESOLVE_ERROR) == S.NO_ORDER
    assert REWORK_STATION_TABLE.destination(S.MAINTENANCE, T.END_MAINTENANCE) == S.NO_ORDER
    assert REWORK_STATION_TABLE.destination(S.SHUTTING_DOWN, T.START) == S.WAIT_PALLET


def test_can_fire_false_without_rule():
    assert REWORK_STATION_TABLE.can_fire(S.WAIT_PALLET, T.TANK_CHOSEN) is False
    assert REWORK_STATION_TABLE.rule(S.WAIT_PALLET, T.TANK_CHOSEN) is None
    assert REWORK_STATION_TABLE.destination(S.WAIT_PALLET, T.TANK_CHOSEN) is None


def test_shutting_down_only_accepts_start():
    assert REWORK_STATION_TABLE.permitted_triggers(S.SHUTTING_DOWN) == [T.START]


def test_permitted_triggers_in_declaration_order():
    assert REWORK_STATION_TABLE.permitted_triggers(S.WAIT_PALLET) == [
        T.PAUSE,
        T.PALLET_ARRIVED,
        T.DETECT_ERROR,
    ]


def test_permitted_triggers_agree_with_can_fire():
    for state in S:
        permitted = set(REWORK_STATION_TABLE.permitted_triggers(state))
        for trigger in T:
            assert REWORK_STATION_TABLE.can_fire(state, trigger) == (trigger in permitted)


def test_actions_bound_to_states():
    assert REWORK_STATION_TABLE.exit_action(S.SCAN_PALLET) == "scan_pallet"
    assert REWORK_STATION_TABLE.exit_action(S.WAIT_PALLET) is None
    assert REWORK_STATION_TABLE.entry_action(S.SCAN_PALLET, T.PALLET_ARRIVED) == "pallet_arrived"
    assert REWORK_STATION_TABLE.entry_action(S.NO_ORDER, T.TANK_CHOSEN) == "tank_chosen"
    # Same destination, different trigger: no action
    assert REWORK_STATION_TABLE.entry_action(S.SCAN_TANK, T.PALLET_SCANNED) is None


def test_default_table_is_valid_against_default_registry():
    REWORK_STATION_TABLE.validate(known_operations=build_default_registry().names())


def test_every_state_reachable():
    assert REWORK_STATION_TABLE.reachable_states() == set(S)


def test_duplicate_rule_rejected():
    with pytest.raises(TransitionTableError) as exc_info:
        TransitionTable(
            initial_state=S.NO_ORDER,
            transitions=(
                Transition(S.NO_ORDER, T.START, S.WAIT_PALLET),
                Transition(S.NO_ORDER, T.START, S.MAINTENANCE),
            )
        )

    assert exc_info.value.error_code == "INVALID_TRANSITION_TABLE"
    assert exc_info.value.data["problems"] == ["NoOrder + Start"]


def test_validate_reports_every_problem():
    table = TransitionTable(
        initial_state=S.NO_ORDER,
        transitions=(Transition(S.NO_ORDER, T.START, S.WAIT_PALLET),),
        entry_actions={
            (S.WAIT_PALLET, T.START): "start",
            (S.PAUSED, T.PAUSE): "pause",
        }
    )

    with pytest.raises(TransitionTableError) as exc_info:
        table.validate(known_operations=["pause"])

    problems = exc_info.value.data["problems"]
    assert len(problems) == 3
    assert problems[0].startswith("Unreachable states:")
    assert "Paused" in problems[0]
    assert "'pause' bound to Paused via Pause" in problems[1]
    assert problems[2] == "Unregistered operations: start"


def test_table_mappings_are_read_only():
    with pytest.raises(TypeError):
        REWORK_STATION_TABLE.exit_actions[S.WAIT_PALLET] = "start"


def test_info_describes_table():
    info = REWORK_STATION_TABLE.info()

    assert info.initial_state == S.NO_ORDER
    assert [s.state for s in info.states] == list(S)
    assert len(info.transitions) == len(REWORK_STATION_TABLE.transitions)

    scan_pallet = next(s for s in info.states if s.state == S.SCAN_PALLET)
    assert scan_pallet.code == "scan_pallet"
    assert scan_pallet.exit_action == "scan_pallet"
    assert scan_pallet.entry_actions == {T.PALLET_ARRIVED: "pallet_arrived"}
    assert scan_pallet.permitted_triggers == [T.PAUSE, T.PALLET_SCANNED, T.DETECT_ERROR]

    no_order = next(s for s in info.states if s.state == S.NO_ORDER)
    assert no_order.entry_actions == {
        T.TANK_CHOSEN: "tank_chosen",
        T.RESOLVE_ERROR: "initialize",
        T.END_MAINTENANCE: "initialize",
    }
