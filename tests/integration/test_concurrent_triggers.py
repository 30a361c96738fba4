"""
Integration tests for concurrent triggers on the same station.

Several controllers (one per simulated request) fire triggers on one
station at the same time against a shared store. The per-station lock and
the versioned write must serialize them: no accepted transition is lost and
storage always ends on a state the table can reach from the last applied
transition.
"""
import asyncio

import pytest

from rework_backend.models.machine import MachineState as S
from rework_backend.models.machine import MachineTrigger as T
from rework_backend.models.machine import encode_state
from rework_backend.models.outcome import OutcomeStatus

pytestmark = pytest.mark.integration


async def fire(controller_factory, station_id, trigger):
    controller = await controller_factory.create(station_id)
    return await controller.trigger(trigger)


@pytest.mark.asyncio
async def test_pallet_arrived_and_pause_race(controller_factory, seed_station, station_repository, fake_redis):
    """
    WaitPallet + concurrent PalletArrived and Pause.

    Whatever order the lock grants, Pause is legal from both WaitPallet and
    ScanPallet, so the station must end Paused and every accepted trigger
    must have been persisted.
    """
    await seed_station(7, "wait_pallet")

    outcomes = await asyncio.gather(
        fire(controller_factory, 7, T.PALLET_ARRIVED),
        fire(controller_factory, 7, T.PAUSE),
    )

    applied = [o for o in outcomes if o.status == OutcomeStatus.APPLIED]
    stored = await station_repository.load_by_id(7)

    assert stored.status == "paused"
    assert stored.version == 1 + len(applied)
    assert len(fake_redis.published) == len(applied)
    assert all(o.status != OutcomeStatus.DEGRADED for o in outcomes)


@pytest.mark.asyncio
async def test_concurrent_start_applies_exactly_once(controller_factory, station_repository, journal):
    """
    10 requests fire Start on a station in NoOrder at the same time.

    Expected behavior:
    - Exactly 1 applied outcome, 9 rejections (the others see WaitPallet)
    - The start operation ran once
    - Storage at WaitPallet, version 1
    """
    outcomes = await asyncio.gather(*(
        fire(controller_factory, 7, T.START) for _ in range(10)
    ))

    statuses = [o.status for o in outcomes]
    assert statuses.count(OutcomeStatus.APPLIED) == 1
    assert statuses.count(OutcomeStatus.REJECTED) == 9
    assert all(o.state == S.WAIT_PALLET for o in outcomes)
    assert journal.names == ["start"]

    stored = await station_repository.load_by_id(7)
    assert stored.status == "wait_pallet"
    assert stored.version == 1


@pytest.mark.asyncio
async def test_concurrent_cycle_steps_never_lose_updates(controller_factory, seed_station, station_repository):
    """Each cycle trigger fired concurrently: the versions count every applied step."""
    await seed_station(7, "wait_pallet")

    outcomes = await asyncio.gather(*(
        fire(controller_factory, 7, trigger)
        for trigger in (
            T.PALLET_ARRIVED,
            T.PALLET_SCANNED,
            T.TANK_SCANNED,
            T.BIGBAG_EMPTIED,
            T.TANK_CHOSEN,
        ) * 2
    ))

    applied = [o for o in outcomes if o.accepted]
    stored = await station_repository.load_by_id(7)

    assert stored.version == 1 + len(applied)

    # Applied outcomes chain from WaitPallet: each starts where another ended
    steps = {o.previous_state: o.state for o in applied}
    assert len(steps) == len(applied)
    state = S.WAIT_PALLET
    for _ in applied:
        state = steps[state]
    assert stored.status == encode_state(state)


@pytest.mark.asyncio
async def test_stations_do_not_block_each_other(controller_factory, station_repository):
    outcomes = await asyncio.gather(*(
        fire(controller_factory, station_id, T.START) for station_id in range(1, 6)
    ))

    assert all(o.status == OutcomeStatus.APPLIED for o in outcomes)
    stations = await station_repository.list_all()
    assert [(s.id, s.status) for s in stations] == [(i, "wait_pallet") for i in range(1, 6)]
