"""
Dependency injection for FastAPI.

Centralizes the creation of repositories and services with FastAPI
Depends().

Strategy:
- Singletons: RedisRepository (connection pools), OperationRegistry
  - Shared process-wide, created lazily on first use
- New instances per request: StationRepository, StationEventService,
  StationLockService, StationService, StationControllerFactory
  - Thin wrappers over the shared Redis client, hold no state

Testability:
- Override any factory with app.dependency_overrides
- reset_singletons() forces re-creation between tests

Usage in routers:
    from rework_backend.core.dependency import get_controller_factory

    @router.post("/stations/{station_id}/triggers")
    async def fire_trigger(
        station_id: int,
        factory: StationControllerFactory = Depends(get_controller_factory)
    ):
        controller = await factory.create(station_id)
"""

from typing import Optional
from fastapi import Depends, HTTPException
from redis import asyncio as aioredis

from rework_backend.repositories.redis_repository import RedisRepository
from rework_backend.repositories.station_repository import StationRepository
from rework_backend.services.controller_factory import StationControllerFactory
from rework_backend.services.operations.registry import OperationRegistry, build_default_registry
from rework_backend.services.station_event_service import StationEventService
from rework_backend.services.station_lock_service import StationLockService
from rework_backend.services.station_service import StationService
from rework_backend.config import config


# ============================================================================
# SINGLETONS
# ============================================================================

_operation_registry_singleton: Optional[OperationRegistry] = None


def get_redis_repository() -> RedisRepository:
    return RedisRepository()


def get_operation_registry() -> OperationRegistry:
    """
    Factory for OperationRegistry (singleton).

    Handlers are resolved from the registry per action, so one registry
    serves every request.
    """
    global _operation_registry_singleton

    if _operation_registry_singleton is None:
        _operation_registry_singleton = build_default_registry(
            delay_seconds=config.OPERATION_DELAY_SECONDS
        )

    return _operation_registry_singleton


# ============================================================================
# REDIS CLIENTS
# ============================================================================


def get_redis(
    redis_repo: RedisRepository = Depends(get_redis_repository)
) -> aioredis.Redis:
    """
    Main Redis client (records, locks, publish).

    Raises:
        HTTPException: 503 if Redis is not connected
    """
    client = redis_repo.get_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Redis service unavailable")
    return client


def get_pubsub_redis(
    redis_repo: RedisRepository = Depends(get_redis_repository)
) -> aioredis.Redis:
    """
    Redis client of the pubsub pool (SSE subscriptions).

    Raises:
        HTTPException: 503 if Redis is not connected
    """
    client = redis_repo.get_pubsub_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Redis service unavailable")
    return client


# ============================================================================
# FACTORY FUNCTIONS - New instance per request
# ============================================================================


def get_station_repository(redis: aioredis.Redis = Depends(get_redis)) -> StationRepository:
    return StationRepository(redis)


def get_station_event_service(redis: aioredis.Redis = Depends(get_redis)) -> StationEventService:
    return StationEventService(redis)


def get_station_lock_service(redis: aioredis.Redis = Depends(get_redis)) -> StationLockService:
    return StationLockService(redis)


def get_station_service(
    repository: StationRepository = Depends(get_station_repository),
    event_service: StationEventService = Depends(get_station_event_service),
    lock_service: StationLockService = Depends(get_station_lock_service)
) -> StationService:
    return StationService(
        repository=repository,
        event_service=event_service,
        lock_service=lock_service
    )


def get_controller_factory(
    repository: StationRepository = Depends(get_station_repository),
    event_service: StationEventService = Depends(get_station_event_service),
    lock_service: StationLockService = Depends(get_station_lock_service),
    operations: OperationRegistry = Depends(get_operation_registry)
) -> StationControllerFactory:
    """
    Factory for StationControllerFactory (new instance per request).

    Usage:
        factory: StationControllerFactory = Depends(get_controller_factory)
        controller = await factory.create(station_id)
    """
    return StationControllerFactory(
        repository=repository,
        event_service=event_service,
        lock_service=lock_service,
        operations=operations
    )


# ============================================================================
# UTILITY FUNCTIONS - Testing
# ============================================================================


def reset_singletons() -> None:
    """
    Reset every singleton to None.

    WARNING: tests only.
    """
    global _operation_registry_singleton

    _operation_registry_singleton = None
