"""
SSE Service streaming a station's state notifications.

Subscribes to the station topic ("<namespace>/station<id>/state") on Redis
pub/sub and yields Server-Sent Events. The retained record, if any, is sent
first so a client starts from the current state.

Usage:
    from rework_backend.services.sse_service import station_event_generator
    from sse_starlette import EventSourceResponse

    @router.get("/stations/{station_id}")
    async def stream(request: Request, station_id: int, ...):
        return EventSourceResponse(
            station_event_generator(request, redis, event_service, station_id),
            ping=15,
            send_timeout=30
        )
"""
import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from redis import asyncio as aioredis

from rework_backend.services.station_event_service import StationEventService

logger = logging.getLogger(__name__)

EVENT_NAME = "station_state"


def _to_event(raw: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Malformed JSON in station notification: {e}")
        return None

    return {
        "event": EVENT_NAME,
        "data": json.dumps(data),
        "id": str(data.get("version", ""))  # For Last-Event-ID support
    }


async def station_event_generator(
    request: Request,
    redis: aioredis.Redis,
    event_service: StationEventService,
    station_id: int
) -> AsyncGenerator[Dict[str, Any], None]:
    """
    Subscribe to a station topic and yield SSE events.

    Args:
        request: FastAPI Request for disconnect detection
        redis: Async Redis client for the subscription (pubsub pool)
        event_service: Event service (topic naming and retained messages)
        station_id: Station to stream

    Yields:
        dict: {"event": "station_state", "data": <record JSON>, "id": <version>}
    """
    topic = event_service.state_topic(station_id)
    logger.info(f"SSE client connected - subscribing to {topic}")

    async with redis.pubsub() as pubsub:
        try:
            await pubsub.subscribe(topic)

            retained = await event_service.get_retained(topic)
            if retained is not None:
                event = _to_event(retained)
                if event is not None:
                    yield event

            while True:
                if await request.is_disconnected():
                    logger.info(f"SSE client of {topic} disconnected - cleaning up")
                    break

                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0
                )

                if message and message["type"] == "message":
                    event = _to_event(message["data"])
                    if event is not None:
                        logger.debug(f"SSE: Streaming state of station {station_id}")
                        yield event

        except asyncio.CancelledError:
            logger.info(f"SSE stream of {topic} cancelled - client disconnected")
            raise

        finally:
            logger.info(f"SSE subscription cleanup complete ({topic})")
