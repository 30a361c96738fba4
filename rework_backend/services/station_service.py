"""
StationService - station record queries and administrative overrides.

Read side of the station API plus the direct status override (PUT), which
bypasses the transition table but still runs under the station lock, writes
with a version check and publishes the record like a transition does.
"""
import logging

from redis.exceptions import RedisError

from rework_backend.config import config
from rework_backend.exceptions import InvalidStatusError, PersistenceError, StationNotFoundError
from rework_backend.models.machine import known_status_codes
from rework_backend.models.station import ReworkStation
from rework_backend.repositories.station_repository import StationRepository
from rework_backend.services.station_event_service import StationEventService
from rework_backend.services.station_lock_service import StationLockService

logger = logging.getLogger(__name__)


class StationService:
    """Station record queries and status override."""

    def __init__(
        self,
        repository: StationRepository,
        event_service: StationEventService,
        lock_service: StationLockService
    ):
        self.repository = repository
        self.event_service = event_service
        self.lock_service = lock_service

    async def list_stations(self) -> list[ReworkStation]:
        try:
            return await self.repository.list_all()
        except RedisError as e:
            logger.error(f"Failed to list stations: {e}")
            raise PersistenceError(station_id=None, details=str(e)) from e

    async def get_station(self, station_id: int) -> ReworkStation:
        """
        Raises:
            StationNotFoundError: If the station was never persisted
            PersistenceError: If Redis fails
        """
        try:
            station = await self.repository.load_by_id(station_id)
        except RedisError as e:
            raise PersistenceError(station_id, str(e)) from e

        if station is None:
            raise StationNotFoundError(station_id)
        return station

    async def update_status(self, station_id: int, status: str) -> ReworkStation:
        """
        Overwrite a station's status code and publish the record.

        Linked order fields are kept as stored.

        Args:
            station_id: Station identifier
            status: New state code (must be a known code)

        Returns:
            The stored record

        Raises:
            InvalidStatusError: If status is not a known state code
            StationNotFoundError: If the station was never persisted
            StationBusyError: If a transition holds the station lock too long
            VersionConflictError: If the record changed during the write
        """
        codes = known_status_codes()
        if status not in codes:
            raise InvalidStatusError(status, codes)

        async with self.lock_service.hold(station_id):
            current = await self.get_station(station_id)

            try:
                saved = await self.repository.upsert(
                    current.model_copy(update={"status": status}),
                    expected_version=current.version
                )
            except RedisError as e:
                raise PersistenceError(station_id, str(e)) from e

        logger.info(f"Station {station_id} status overridden: {current.status} → {status}")

        topic = self.event_service.state_topic(station_id)
        published = await self.event_service.publish(
            topic=topic,
            payload=saved.model_dump(mode="json"),
            qos=config.NOTIFICATION_QOS,
            retain=config.NOTIFICATION_RETAIN
        )
        if not published:
            logger.warning(f"Status override of station {station_id} stored but not published to {topic}")

        return saved
