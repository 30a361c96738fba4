"""
Redis lock service serializing transitions per station.

Implements a distributed lock with Redis SET NX PX so that at most one
trigger runs load-decide-persist on a station at a time, across every API
worker process.

Key patterns:
- SET NX PX: Atomic lock acquisition with automatic expiration
- Lua script: Safe lock release with ownership verification
- Lock tokens: UUID-based tokens prevent releasing someone else's lock
- Waiting: acquisition is polled (tenacity) until the wait budget runs out
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from redis import asyncio as aioredis
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_delay,
    wait_fixed
)

from rework_backend.config import config
from rework_backend.exceptions import StationBusyError

logger = logging.getLogger(__name__)

# Lua script for safe lock release with ownership verification
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class StationLockService:
    """
    Per-station mutual exclusion backed by Redis.

    Attributes:
        redis: Async Redis client instance
        ttl_seconds: Lock expiration (safety net for crashed holders)
        wait_seconds: How long acquire_lock waits for a busy station
        retry_interval: Delay between acquisition attempts
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        ttl_seconds: Optional[float] = None,
        wait_seconds: Optional[float] = None,
        retry_interval: Optional[float] = None
    ):
        """
        Initialize lock service with Redis client.

        Args:
            redis_client: Connected async Redis client (from RedisRepository.get_client())
            ttl_seconds: Lock TTL (default: config.STATION_LOCK_TTL_SECONDS)
            wait_seconds: Wait budget (default: config.STATION_LOCK_WAIT_SECONDS)
            retry_interval: Poll interval (default: config.STATION_LOCK_RETRY_INTERVAL_SECONDS)
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds or config.STATION_LOCK_TTL_SECONDS
        self.wait_seconds = wait_seconds or config.STATION_LOCK_WAIT_SECONDS
        self.retry_interval = retry_interval or config.STATION_LOCK_RETRY_INTERVAL_SECONDS

    def _lock_key(self, station_id: int) -> str:
        """
        Generate Redis key for a station lock.

        Format: "station_lock:{station_id}"
        """
        return f"station_lock:{station_id}"

    async def try_acquire_lock(self, station_id: int) -> Optional[str]:
        """
        Single acquisition attempt.

        Returns:
            Lock token if acquired, None if the station is locked
        """
        token = uuid.uuid4().hex
        acquired = await self.redis.set(
            self._lock_key(station_id),
            token,
            nx=True,  # Only set if key doesn't exist
            px=int(self.ttl_seconds * 1000)  # Auto-expire after TTL
        )
        return token if acquired else None

    async def acquire_lock(self, station_id: int) -> str:
        """
        Acquire the station lock, waiting while another holder has it.

        Args:
            station_id: Station identifier

        Returns:
            Lock token (UUID hex) for safe release

        Raises:
            StationBusyError: If the lock is still held after wait_seconds
            RedisError: If Redis operation fails
        """

        async def attempt() -> str:
            token = await self.try_acquire_lock(station_id)
            if token is None:
                raise StationBusyError(station_id, self.wait_seconds)
            return token

        retrying = AsyncRetrying(
            stop=stop_after_delay(self.wait_seconds),
            wait=wait_fixed(self.retry_interval),
            retry=retry_if_exception_type(StationBusyError),
            reraise=True
        )
        token = await retrying(attempt)

        logger.debug(f"Lock acquired: station {station_id} (token: {token[:8]}...)")
        return token

    async def release_lock(self, station_id: int, lock_token: str) -> bool:
        """
        Release lock safely using Lua script with ownership verification.

        Args:
            station_id: Station identifier
            lock_token: Token returned from acquire_lock

        Returns:
            True if released, False if the lock was no longer ours (expired)

        Raises:
            RedisError: If Redis operation fails
        """
        result = await self.redis.eval(
            RELEASE_SCRIPT,
            1,  # Number of keys
            self._lock_key(station_id),
            lock_token
        )

        released = result == 1

        if released:
            logger.debug(f"Lock released: station {station_id} (token: {lock_token[:8]}...)")
        else:
            logger.warning(
                f"⚠️ Lock not released: station {station_id} - lock expired before release "
                f"(token: {lock_token[:8]}...). Increase STATION_LOCK_TTL_SECONDS."
            )

        return released

    @asynccontextmanager
    async def hold(self, station_id: int) -> AsyncIterator[str]:
        """
        Hold the station lock for the duration of the block.

        Usage:
            async with lock_service.hold(7):
                ...  # load, decide, persist
        """
        token = await self.acquire_lock(station_id)
        try:
            yield token
        finally:
            await self.release_lock(station_id, token)
