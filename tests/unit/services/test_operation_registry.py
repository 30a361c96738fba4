"""
Unit tests for OperationRegistry and the simulated operation handlers.
"""
import pytest
from unittest.mock import AsyncMock, patch

from rework_backend.exceptions import UnknownOperationError
from rework_backend.models.machine import MachineContext, MachineState, MachineTrigger
from rework_backend.services.operations.handlers import (
    DEFAULT_HANDLERS,
    PalletArrivedOperationHandler
)
from rework_backend.services.operations.registry import OperationRegistry, build_default_registry
from rework_backend.services.state_machines.rework_station_table import REWORK_STATION_TABLE


@pytest.fixture
def context():
    return MachineContext(
        station_id=7,
        previous_state=MachineState.WAIT_PALLET,
        current_state=MachineState.SCAN_PALLET,
        trigger=MachineTrigger.PALLET_ARRIVED,
        parameters={"pallet_id": "PAL-0042"}
    )


def test_default_registry_covers_table():
    registry = build_default_registry()

    assert REWORK_STATION_TABLE.operation_names() <= registry.names()
    assert len(registry.names()) == len(DEFAULT_HANDLERS)


def test_resolve_builds_fresh_instances():
    registry = build_default_registry(delay_seconds=0.25)

    first = registry.resolve("pallet_arrived")
    second = registry.resolve("pallet_arrived")

    assert isinstance(first, PalletArrivedOperationHandler)
    assert first is not second
    assert first.delay_seconds == 0.25


def test_resolve_unknown_operation():
    registry = OperationRegistry()

    with pytest.raises(UnknownOperationError) as exc_info:
        registry.resolve("weld")

    assert exc_info.value.error_code == "UNKNOWN_OPERATION"
    assert "weld" not in registry


def test_register_twice_rejected():
    registry = OperationRegistry()
    registry.register("start", lambda: None)

    with pytest.raises(ValueError):
        registry.register("start", lambda: None)


@pytest.mark.asyncio
async def test_scope_closes_handler_even_on_failure(context):
    handler = AsyncMock()
    handler.execute.side_effect = RuntimeError("scanner offline")
    registry = OperationRegistry()
    registry.register("scan_pallet", lambda: handler)

    with pytest.raises(RuntimeError):
        async with registry.scope("scan_pallet") as scoped:
            await scoped.execute(context)

    handler.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_scope_close_error_does_not_mask_result(context):
    handler = AsyncMock()
    handler.aclose.side_effect = RuntimeError("already closed")
    registry = OperationRegistry()
    registry.register("start", lambda: handler)

    async with registry.scope("start") as scoped:
        await scoped.execute(context)

    handler.execute.assert_awaited_once_with(context)


@pytest.mark.asyncio
async def test_simulated_handler_waits_configured_delay(context):
    handler = PalletArrivedOperationHandler(delay_seconds=0.5)

    with patch("rework_backend.services.operations.handlers.asyncio.sleep", new=AsyncMock()) as sleep:
        await handler.execute(context)

    sleep.assert_awaited_once_with(0.5)


@pytest.mark.asyncio
async def test_simulated_handler_without_delay_does_not_sleep(context):
    handler = PalletArrivedOperationHandler()

    with patch("rework_backend.services.operations.handlers.asyncio.sleep", new=AsyncMock()) as sleep:
        await handler.execute(context)
        await handler.aclose()

    sleep.assert_not_awaited()
