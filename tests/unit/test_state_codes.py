"""
Unit tests for persisted state codes.
"""
import pytest

from rework_backend.exceptions import UnknownPersistedStateError
from rework_backend.models.machine import (
    STATE_CODES,
    MachineState,
    decode_state,
    encode_state,
    known_status_codes
)


@pytest.mark.parametrize("state", list(MachineState))
def test_code_round_trip(state):
    assert decode_state(encode_state(state)) is state


def test_codes_are_distinct_and_total():
    assert set(STATE_CODES) == set(MachineState)
    assert len(set(known_status_codes())) == len(MachineState)


def test_known_codes():
    assert encode_state(MachineState.NO_ORDER) == "no_order"
    assert encode_state(MachineState.SCAN_PALLET) == "scan_pallet"
    assert encode_state(MachineState.CHOOSE_TANK) == "choose_tank"


@pytest.mark.parametrize("status", ["unknown_code", "", None, "ScanPallet", "NO_ORDER"])
def test_unknown_code_never_defaults(status):
    with pytest.raises(UnknownPersistedStateError) as exc_info:
        decode_state(status, station_id=7)

    assert exc_info.value.error_code == "UNKNOWN_PERSISTED_STATE"
    assert exc_info.value.data == {"station_id": 7, "status": status}
