"""
Factory building station controllers on demand.
"""
import logging

from rework_backend.repositories.station_repository import StationRepository
from rework_backend.services.operations.registry import OperationRegistry
from rework_backend.services.state_machines.rework_station_table import REWORK_STATION_TABLE
from rework_backend.services.state_machines.transition_table import TransitionTable
from rework_backend.services.station_controller import ReworkStationController
from rework_backend.services.station_event_service import StationEventService
from rework_backend.services.station_lock_service import StationLockService

logger = logging.getLogger(__name__)


class StationControllerFactory:
    """
    Creates a fresh ReworkStationController per call.

    Holds only shared, stateless collaborators, so concurrent create() calls
    for the same or different stations are independent.
    """

    def __init__(
        self,
        repository: StationRepository,
        event_service: StationEventService,
        lock_service: StationLockService,
        operations: OperationRegistry,
        table: TransitionTable = REWORK_STATION_TABLE
    ):
        self.repository = repository
        self.event_service = event_service
        self.lock_service = lock_service
        self.operations = operations
        self.table = table

    async def create(self, station_id: int) -> ReworkStationController:
        """
        Build a controller for station_id with its state loaded from storage.

        Raises:
            UnknownPersistedStateError: If the stored status code is unknown
            PersistenceError: If the record cannot be read
        """
        return await ReworkStationController.load(
            station_id=station_id,
            table=self.table,
            repository=self.repository,
            event_service=self.event_service,
            lock_service=self.lock_service,
            operations=self.operations
        )
