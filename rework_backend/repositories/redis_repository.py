"""
Redis repository for connection pool management.

Provides singleton Redis clients with async support for FastAPI integration.
Handles connection lifecycle, health checks, and graceful error handling.

Usage:
    redis_repo = RedisRepository()
    await redis_repo.connect()
    # Use redis_repo.get_client() for records, locks and publish
    await redis_repo.disconnect()
"""
import logging
from typing import Optional
from redis import asyncio as aioredis
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from rework_backend.config import config

logger = logging.getLogger(__name__)

PUBSUB_MAX_CONNECTIONS = 60


class RedisRepository:
    """
    Singleton repository for Redis connection management.

    Manages TWO connection pools:
    1. Main pool: short-lived operations (records, locks, publish)
    2. Pubsub pool: long-lived SSE subscriptions, so streaming clients
       cannot exhaust the pool used by transitions

    Attributes:
        client: Async Redis client for operations
        pubsub_client: Async Redis client for subscriptions
    """

    _instance: Optional['RedisRepository'] = None
    _initialized: bool = False

    def __new__(cls):
        """Singleton pattern: only one instance per application."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize repository (only once due to singleton)."""
        if not RedisRepository._initialized:
            self.client: Optional[aioredis.Redis] = None
            self.pubsub_client: Optional[aioredis.Redis] = None
            self._pool: Optional[aioredis.ConnectionPool] = None
            self._pubsub_pool: Optional[aioredis.ConnectionPool] = None
            RedisRepository._initialized = True
            logger.info("RedisRepository initialized (singleton)")

    def get_client(self) -> Optional[aioredis.Redis]:
        """
        Get the main Redis client (records, locks, publish).

        Returns:
            Redis client instance if connected, None otherwise

        Warning:
            If client is None, caller must handle it (the dependency layer
            answers 503) or wait for the FastAPI startup event.
        """
        if self.client is None:
            logger.warning(
                "Redis client requested but not yet connected. "
                "Ensure FastAPI startup event has completed."
            )
        return self.client

    def get_pubsub_client(self) -> Optional[aioredis.Redis]:
        """Get the dedicated Redis client for pubsub subscriptions (SSE)."""
        if self.pubsub_client is None:
            logger.warning(
                "Redis pubsub client requested but not yet connected. "
                "Ensure FastAPI startup event has completed."
            )
        return self.pubsub_client

    async def connect(self) -> None:
        """
        Establish both connection pools and verify them with PING.

        Raises:
            RedisConnectionError: If connection fails after retries
        """
        if self.client is not None and self.pubsub_client is not None:
            logger.warning("Redis clients already connected, skipping reconnect")
            return

        try:
            logger.info(
                f"Connecting to Redis at {config.REDIS_URL} "
                f"(main pool: {config.REDIS_POOL_MAX_CONNECTIONS} connections, "
                f"pubsub pool: {PUBSUB_MAX_CONNECTIONS} connections)"
            )

            pool_options = dict(
                decode_responses=True,  # Auto-decode bytes to str
                encoding='utf-8',
                socket_connect_timeout=config.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=config.REDIS_SOCKET_TIMEOUT,
                socket_keepalive=True,
                retry_on_timeout=True,
                health_check_interval=config.REDIS_HEALTH_CHECK_INTERVAL
            )

            self._pool = aioredis.ConnectionPool.from_url(
                config.REDIS_URL,
                max_connections=config.REDIS_POOL_MAX_CONNECTIONS,
                **pool_options
            )
            self._pubsub_pool = aioredis.ConnectionPool.from_url(
                config.REDIS_URL,
                max_connections=PUBSUB_MAX_CONNECTIONS,
                **pool_options
            )

            self.client = aioredis.Redis(connection_pool=self._pool)
            self.pubsub_client = aioredis.Redis(connection_pool=self._pubsub_pool)

            await self._verify_connection(self.client, "main")
            await self._verify_connection(self.pubsub_client, "pubsub")

            logger.info("✅ Redis connections established successfully")

        except RedisConnectionError as e:
            logger.error(f"❌ Failed to connect to Redis: {e}")
            raise
        except Exception as e:
            logger.error(f"❌ Unexpected error connecting to Redis: {e}")
            raise RedisConnectionError(f"Redis connection failed: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(RedisConnectionError),
        reraise=True
    )
    async def _verify_connection(self, client: aioredis.Redis, label: str) -> None:
        """
        Verify a Redis client with PING (with retry).

        Raises:
            RedisConnectionError: If PING fails after 3 attempts
        """
        try:
            response = await client.ping()
            if not response:
                raise RedisConnectionError(f"{label} client PING returned False")
        except RedisConnectionError:
            raise
        except RedisError as e:
            logger.warning(f"Redis {label} client PING failed: {e}")
            raise RedisConnectionError(f"{label} client PING verification failed: {e}") from e

    async def disconnect(self) -> None:
        """
        Close Redis clients and dispose both pools.

        Safe to call multiple times (idempotent).
        """
        try:
            logger.info("Disconnecting from Redis...")

            if self.client is not None:
                await self.client.aclose()
                self.client = None

            if self.pubsub_client is not None:
                await self.pubsub_client.aclose()
                self.pubsub_client = None

            if self._pool:
                await self._pool.disconnect()
                self._pool = None

            if self._pubsub_pool:
                await self._pubsub_pool.disconnect()
                self._pubsub_pool = None

            logger.info("✅ Redis disconnected successfully (both pools)")
        except Exception as e:
            logger.error(f"❌ Error disconnecting from Redis: {e}")
            # Don't raise - allow graceful shutdown

    async def health_check(self) -> dict:
        """
        Check Redis connection health.

        Returns:
            {"status": "healthy"} or {"status": "unhealthy", "error": "..."}
        """
        if self.client is None:
            return {"status": "unhealthy", "error": "Redis client not connected"}

        try:
            await self.client.ping()
            return {"status": "healthy"}
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return {"status": "unhealthy", "error": str(e)}
