"""
Station repository: persisted rework station records in Redis.

Each station is a Redis hash:
    station:{id}  →  {"data": <record JSON>, "version": <int>}

Writes are an atomic compare-and-set on the version field (Lua script), so
a writer that decided on a stale record fails with VersionConflictError
instead of silently overwriting a newer transition.
"""
import logging
from typing import Optional
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from rework_backend.exceptions import VersionConflictError
from rework_backend.models.station import ReworkStation

logger = logging.getLogger(__name__)

KEY_PREFIX = "station:"

# KEYS[1] = station key, ARGV[1] = expected version, ARGV[2] = record JSON,
# ARGV[3] = new version. Returns the new version, or -1 - actual version
# on mismatch (a missing hash counts as version 0).
UPSERT_SCRIPT = """
local current = tonumber(redis.call("hget", KEYS[1], "version") or "0")
if current ~= tonumber(ARGV[1]) then
    return -1 - current
end
redis.call("hset", KEYS[1], "data", ARGV[2], "version", ARGV[3])
return tonumber(ARGV[3])
"""


class StationRepository:
    """
    Repository for choco rework station records.

    Attributes:
        redis: Async Redis client (decode_responses=True)
    """

    def __init__(self, redis_client: aioredis.Redis):
        """
        Args:
            redis_client: Connected async Redis client (from RedisRepository.get_client())
        """
        self.redis = redis_client

    @staticmethod
    def _key(station_id: int) -> str:
        return f"{KEY_PREFIX}{station_id}"

    @staticmethod
    def _decode(raw: dict) -> Optional[ReworkStation]:
        if not raw or "data" not in raw:
            return None
        station = ReworkStation.model_validate_json(raw["data"])
        return station.model_copy(update={"version": int(raw.get("version", 0))})

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(RedisError),
        reraise=True
    )
    async def load_by_id(self, station_id: int) -> Optional[ReworkStation]:
        """
        Load a station record.

        Args:
            station_id: Station identifier

        Returns:
            ReworkStation with its current version, or None if never persisted

        Raises:
            RedisError: If Redis fails (after retries)
        """
        raw = await self.redis.hgetall(self._key(station_id))
        return self._decode(raw)

    async def upsert(self, station: ReworkStation, expected_version: int) -> ReworkStation:
        """
        Create or update a station record with a version check.

        Not retried: a write must never be replayed blindly after an
        ambiguous failure; the caller decides.

        Args:
            station: Record to write (its version field is ignored)
            expected_version: Version the caller read (0 for a new record)

        Returns:
            The stored record carrying its new version

        Raises:
            VersionConflictError: If the stored version differs from expected_version
            RedisError: If Redis fails
        """
        new_version = expected_version + 1
        stored = station.model_copy(update={"version": new_version})
        payload = stored.model_dump_json(exclude={"version"})

        result = int(await self.redis.eval(
            UPSERT_SCRIPT,
            1,  # Number of keys
            self._key(station.id),
            str(expected_version),
            payload,
            str(new_version)
        ))

        if result < 0:
            actual = -1 - result
            logger.warning(
                f"Version conflict writing station {station.id}: "
                f"expected {expected_version}, actual {actual}"
            )
            raise VersionConflictError(station.id, expected=expected_version, actual=actual)

        logger.debug(f"Station {station.id} stored with status {station.status} (version {new_version})")
        return stored

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(RedisError),
        reraise=True
    )
    async def list_all(self) -> list[ReworkStation]:
        """Every persisted station, ordered by id."""
        stations = []
        async for key in self.redis.scan_iter(match=f"{KEY_PREFIX}*"):
            station = self._decode(await self.redis.hgetall(key))
            if station is not None:
                stations.append(station)
        return sorted(stations, key=lambda s: s.id)
