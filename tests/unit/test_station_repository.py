"""
Unit tests for StationRepository - station records in Redis hashes.

Tests validate:
- Hash layout: station:{id} → data (JSON) + version
- Compare-and-set upsert: version increments, stale writers conflict
- list_all ordering
"""
import json

import pytest

from rework_backend.exceptions import VersionConflictError
from rework_backend.models.station import ReworkStation


def make_station(station_id=7, status="no_order", **fields):
    return ReworkStation(id=station_id, type="choco_rework", status=status, **fields)


@pytest.mark.asyncio
async def test_load_missing_returns_none(station_repository):
    assert await station_repository.load_by_id(7) is None


@pytest.mark.asyncio
async def test_upsert_creates_record_at_version_one(station_repository, fake_redis):
    saved = await station_repository.upsert(make_station(component="cocoa"), expected_version=0)

    assert saved.version == 1
    raw = fake_redis.hashes["station:7"]
    assert raw["version"] == "1"
    data = json.loads(raw["data"])
    assert "version" not in data
    assert data["component"] == "cocoa"

    loaded = await station_repository.load_by_id(7)
    assert loaded == saved


@pytest.mark.asyncio
async def test_upsert_increments_version(station_repository):
    first = await station_repository.upsert(make_station(), expected_version=0)
    second = await station_repository.upsert(
        first.model_copy(update={"status": "wait_pallet"}),
        expected_version=first.version
    )

    assert second.version == 2
    assert (await station_repository.load_by_id(7)).status == "wait_pallet"


@pytest.mark.asyncio
async def test_stale_write_conflicts_and_keeps_newer_record(station_repository):
    first = await station_repository.upsert(make_station(), expected_version=0)
    await station_repository.upsert(first.model_copy(update={"status": "paused"}), expected_version=1)

    with pytest.raises(VersionConflictError) as exc_info:
        await station_repository.upsert(first.model_copy(update={"status": "error"}), expected_version=1)

    assert exc_info.value.data == {"station_id": 7, "expected_version": 1, "actual_version": 2}
    assert (await station_repository.load_by_id(7)).status == "paused"


@pytest.mark.asyncio
async def test_create_conflicts_when_record_exists(station_repository):
    await station_repository.upsert(make_station(), expected_version=0)

    with pytest.raises(VersionConflictError):
        await station_repository.upsert(make_station(status="wait_pallet"), expected_version=0)


@pytest.mark.asyncio
async def test_list_all_sorted_by_id(station_repository, fake_redis):
    for station_id in (12, 3, 7):
        await station_repository.upsert(make_station(station_id), expected_version=0)
    fake_redis.strings["station_lock:3"] = "token"

    stations = await station_repository.list_all()

    assert [s.id for s in stations] == [3, 7, 12]
