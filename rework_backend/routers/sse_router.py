"""
SSE Router for real-time station state updates.

Endpoints:
    GET /api/sse/stations/{station_id} - SSE stream of a station's state
"""
from fastapi import APIRouter, Request, Depends
from sse_starlette import EventSourceResponse
from redis import asyncio as aioredis

from rework_backend.core.dependency import get_pubsub_redis, get_station_event_service
from rework_backend.services.sse_service import station_event_generator
from rework_backend.services.station_event_service import StationEventService

router = APIRouter(prefix="/api/sse", tags=["sse"])


@router.get("/stations/{station_id}")
async def station_stream(
    station_id: int,
    request: Request,
    redis: aioredis.Redis = Depends(get_pubsub_redis),
    event_service: StationEventService = Depends(get_station_event_service)
):
    """
    SSE endpoint streaming the state notifications of one station.

    Response format:
        event: station_state
        data: {"id": 7, "type": "choco_rework", "status": "scan_pallet", ...}
        id: 4

    Example:
        ```javascript
        const source = new EventSource('/api/sse/stations/7');
        source.addEventListener('station_state', (event) => {
            console.log(JSON.parse(event.data).status);
        });
        ```
    """
    headers = {
        "Cache-Control": "no-cache, no-transform",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",  # Disable nginx buffering
    }

    return EventSourceResponse(
        station_event_generator(request, redis, event_service, station_id),
        headers=headers,
        ping=15,
        send_timeout=30
    )
