"""
Shared test fixtures.

Provides:
- FakeRedis: in-memory async stand-in for redis.asyncio.Redis covering the
  commands the backend uses (strings, hashes, the lock and upsert Lua
  scripts, publish, scan_iter). Every command yields to the event loop
  first, so concurrent tasks interleave like they do against a server.
- Recording operation registry: handlers that record every call in order.
- Repositories, services and controller factory wired to one FakeRedis.
"""
import asyncio
import fnmatch
from typing import Any, Optional

import pytest
from redis.exceptions import RedisError

from rework_backend.models.machine import MachineContext
from rework_backend.models.station import ReworkStation
from rework_backend.repositories.station_repository import StationRepository, UPSERT_SCRIPT
from rework_backend.services.controller_factory import StationControllerFactory
from rework_backend.services.operations.base import OperationHandler
from rework_backend.services.operations.registry import OperationRegistry
from rework_backend.services.state_machines.rework_station_table import REWORK_STATION_TABLE
from rework_backend.services.station_event_service import StationEventService
from rework_backend.services.station_lock_service import RELEASE_SCRIPT, StationLockService
from rework_backend.services.station_service import StationService


class FakeRedis:
    """In-memory async Redis double (decode_responses=True semantics)."""

    def __init__(self):
        self.strings: dict[str, str] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.published: list[tuple[str, str]] = []
        self.failing: set[str] = set()
        self.subscribers = 0

    async def _command(self, name: str) -> None:
        await asyncio.sleep(0)
        if name in self.failing:
            raise RedisError(f"simulated {name} failure")

    async def ping(self) -> bool:
        await self._command("ping")
        return True

    async def get(self, key: str) -> Optional[str]:
        await self._command("get")
        return self.strings.get(key)

    async def set(self, key: str, value: str, nx: bool = False, px: int = None, ex: int = None):
        await self._command("set")
        if nx and key in self.strings:
            return None
        self.strings[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        await self._command("delete")
        removed = 0
        for key in keys:
            removed += int(self.strings.pop(key, None) is not None)
            removed += int(self.hashes.pop(key, None) is not None)
        return removed

    async def hgetall(self, key: str) -> dict[str, str]:
        await self._command("hgetall")
        return dict(self.hashes.get(key, {}))

    async def hset(self, key: str, mapping: dict[str, Any]) -> int:
        await self._command("hset")
        self.hashes.setdefault(key, {}).update({k: str(v) for k, v in mapping.items()})
        return len(mapping)

    async def eval(self, script: str, numkeys: int, *args: str):
        await self._command("eval")
        keys, argv = args[:numkeys], args[numkeys:]

        if script == RELEASE_SCRIPT:
            if self.strings.get(keys[0]) == argv[0]:
                del self.strings[keys[0]]
                return 1
            return 0

        if script == UPSERT_SCRIPT:
            current = int(self.hashes.get(keys[0], {}).get("version", "0"))
            if current != int(argv[0]):
                return -1 - current
            self.hashes[keys[0]] = {"data": argv[1], "version": argv[2]}
            return int(argv[2])

        raise NotImplementedError("FakeRedis does not evaluate arbitrary scripts")

    async def publish(self, channel: str, message: str) -> int:
        await self._command("publish")
        self.published.append((channel, message))
        return self.subscribers

    async def scan_iter(self, match: str = "*"):
        await self._command("scan_iter")
        for key in sorted(set(self.strings) | set(self.hashes)):
            if fnmatch.fnmatchcase(key, match):
                yield key


class RecordingHandler(OperationHandler):
    """Handler appending (name, trigger, state seen) to a shared journal."""

    def __init__(self, name: str, journal: list, failing: set):
        self.name = name
        self.journal = journal
        self.failing = failing

    async def execute(self, context: MachineContext) -> None:
        self.journal.append((self.name, context.trigger.value, context.current_state.value))
        if self.name in self.failing:
            raise RuntimeError(f"{self.name} jammed")


class OperationJournal:
    """Calls recorded by the recording registry, plus names forced to fail."""

    def __init__(self):
        self.calls: list[tuple[str, str, str]] = []
        self.failing: set[str] = set()

    @property
    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def journal():
    return OperationJournal()


@pytest.fixture
def recording_registry(journal):
    """Registry with a recording handler for every operation of the table."""
    registry = OperationRegistry()
    for name in sorted(REWORK_STATION_TABLE.operation_names()):
        registry.register(
            name,
            lambda name=name: RecordingHandler(name, journal.calls, journal.failing)
        )
    return registry


@pytest.fixture
def station_repository(fake_redis):
    return StationRepository(fake_redis)


@pytest.fixture
def event_service(fake_redis):
    return StationEventService(fake_redis, namespace="dcr")


@pytest.fixture
def lock_service(fake_redis):
    return StationLockService(fake_redis, ttl_seconds=5, wait_seconds=2, retry_interval=0.001)


@pytest.fixture
def controller_factory(station_repository, event_service, lock_service, recording_registry):
    return StationControllerFactory(
        repository=station_repository,
        event_service=event_service,
        lock_service=lock_service,
        operations=recording_registry
    )


@pytest.fixture
def station_service(station_repository, event_service, lock_service):
    return StationService(
        repository=station_repository,
        event_service=event_service,
        lock_service=lock_service
    )


@pytest.fixture
def seed_station(station_repository):
    """Persist a station record directly (version 1) and return it."""
    async def _seed(station_id: int, status: str, **fields) -> ReworkStation:
        record = ReworkStation(
            id=station_id,
            type=fields.pop("type", "choco_rework"),
            status=status,
            **fields
        )
        return await station_repository.upsert(record, expected_version=0)

    return _seed
