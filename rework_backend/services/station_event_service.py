"""
Station event publisher for state change notifications.

Publishes the updated station record to a Redis pub/sub channel named
after the station topic, "<namespace>/station<id>/state". Delivery is
best effort (at most once): publish never raises, it reports success.

Retained messages: with retain=True the payload is also stored under
"retained:<topic>" so new subscribers can start from the last state
(get_retained).

Usage:
    event_service = StationEventService(redis_client)
    await event_service.publish(
        topic=event_service.state_topic(7),
        payload=station.model_dump(mode="json"),
    )
"""
import json
import logging
from typing import Any, Optional, Union

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from rework_backend.config import config

logger = logging.getLogger(__name__)

Payload = Union[bytes, str, dict[str, Any], list[Any]]

RETAINED_PREFIX = "retained:"


class StationEventService:
    """
    Service for publishing station notifications to Redis pub/sub.

    Attributes:
        redis_client: Async Redis client for pub/sub operations
        namespace: Topic namespace (default: config.NOTIFICATION_NAMESPACE)
    """

    def __init__(self, redis_client: aioredis.Redis, namespace: Optional[str] = None):
        """
        Initialize event service with Redis client.

        Args:
            redis_client: Async Redis client instance
            namespace: Topic namespace override
        """
        self.redis_client = redis_client
        self.namespace = namespace or config.NOTIFICATION_NAMESPACE

    def state_topic(self, station_id: int) -> str:
        """Topic of a station's state notifications, e.g. "dcr/station7/state"."""
        return f"{self.namespace}/station{station_id}/state"

    @staticmethod
    def _encode(payload: Payload) -> Union[bytes, str]:
        if isinstance(payload, (bytes, str)):
            return payload
        return json.dumps(payload)

    async def publish(
        self,
        topic: str,
        payload: Payload,
        qos: int = 0,
        retain: bool = False
    ) -> bool:
        """
        Publish payload to topic.

        Args:
            topic: Channel name
            payload: bytes/str sent as-is, dict/list serialized to JSON
            qos: Requested quality of service (0-2). Redis pub/sub delivers
                at most once whatever is requested; higher levels are logged.
            retain: Also store the payload as the topic's retained message

        Returns:
            bool: True if published successfully, False otherwise
        """
        if qos not in (0, 1, 2):
            logger.error(f"Invalid QoS {qos} for topic {topic}; message not published")
            return False

        try:
            message = self._encode(payload)

            if retain:
                await self.redis_client.set(f"{RETAINED_PREFIX}{topic}", message)

            subscribers = await self.redis_client.publish(topic, message)

            if qos > 0:
                logger.debug(f"QoS {qos} requested for {topic}; delivered at most once")

            logger.info(f"Published state notification to {topic} ({subscribers} subscribers)")
            return True

        except RedisError as e:
            logger.error(f"Failed to publish to {topic}: {str(e)}")
            return False
        except (TypeError, ValueError) as e:
            logger.error(f"Unserializable payload for {topic}: {str(e)}")
            return False

    async def get_retained(self, topic: str) -> Optional[str]:
        """
        Last retained payload of topic, if any.

        Returns:
            Retained message, or None when nothing is retained or Redis fails
        """
        try:
            return await self.redis_client.get(f"{RETAINED_PREFIX}{topic}")
        except RedisError as e:
            logger.warning(f"Failed to read retained message of {topic}: {str(e)}")
            return None
