"""
Health Check Router - system status monitoring.

Endpoints:
- GET /api/health - API liveness plus Redis connection check
"""

from fastapi import APIRouter, Depends, status
from datetime import datetime, timezone

from rework_backend.core.dependency import get_redis_repository
from rework_backend.repositories.redis_repository import RedisRepository
from rework_backend.config import config
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(
    redis_repo: RedisRepository = Depends(get_redis_repository)
):
    """
    Health check endpoint.

    If Redis is unreachable the API still answers 200 with status
    "degraded", so orchestrators do not restart a process that only lost
    its store.

    Example response (degraded):
        ```json
        {
            "status": "degraded",
            "timestamp": "2026-03-02T14:30:00Z",
            "environment": "production",
            "redis_connection": "error",
            "redis_error": "Redis client not connected",
            "version": "1.0.0"
        }
        ```
    """
    logger.info("Health check requested")

    redis_health = await redis_repo.health_check()
    redis_ok = redis_health["status"] == "healthy"

    if not redis_ok:
        logger.error(f"Health check failed: Redis connection error - {redis_health.get('error')}")

    response = {
        "status": "healthy" if redis_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "environment": config.ENVIRONMENT,
        "redis_connection": "ok" if redis_ok else "error",
        "version": "1.0.0"
    }
    if not redis_ok:
        response["redis_error"] = redis_health.get("error")

    return response
