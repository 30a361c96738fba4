"""
ReworkStationController - one controller per station, per request.

Binds the rework station transition table to a persisted station record:

- load(): hydrates the state from the stored status code (NoOrder when the
  station was never persisted, UnknownPersistedStateError on unknown codes)
- trigger(): fires a trigger under the per-station lock and returns a
  TransitionOutcome (rejected / applied / degraded)
- info(), permitted_triggers(), diagram(): pure reads, no storage access

Every accepted transition ends with the universal entry action: the record
is written with the new status code (version checked, linked order fields
reset) and published to "<namespace>/station<id>/state".
"""
import logging
from typing import Any, Optional

from redis.exceptions import RedisError

from rework_backend.config import config
from rework_backend.exceptions import (
    NotificationError,
    OperationHandlerError,
    PersistenceError,
    ReworkException
)
from rework_backend.models.machine import (
    MachineContext,
    MachineInfo,
    MachineState,
    MachineTrigger,
    decode_state,
    encode_state
)
from rework_backend.models.outcome import OutcomeStatus, TransitionOutcome
from rework_backend.models.station import ReworkStation
from rework_backend.repositories.station_repository import StationRepository
from rework_backend.services.operations.registry import OperationRegistry
from rework_backend.services.state_machines.diagram import render_mermaid
from rework_backend.services.state_machines.machine import StateMachine
from rework_backend.services.state_machines.transition_table import TransitionTable
from rework_backend.services.station_event_service import StationEventService
from rework_backend.services.station_lock_service import StationLockService

logger = logging.getLogger(__name__)


class ReworkStationController:
    """
    State controller of a single choco rework station.

    Instances are short lived (built per request by StationControllerFactory)
    and hold no state beyond the station they were loaded for.

    Attributes:
        station_id: Station identifier
        table: Transition table driving the station
    """

    def __init__(
        self,
        station_id: int,
        table: TransitionTable,
        repository: StationRepository,
        event_service: StationEventService,
        lock_service: StationLockService,
        operations: OperationRegistry,
        state: MachineState,
        record: Optional[ReworkStation] = None
    ):
        """
        Use ReworkStationController.load() instead: it reads the initial
        state from storage.
        """
        self.station_id = station_id
        self.table = table
        self.repository = repository
        self.event_service = event_service
        self.lock_service = lock_service
        self.operations = operations

        self._state = state
        self._record = record
        self._version = record.version if record else 0

        self._machine = StateMachine(
            table=table,
            state_accessor=lambda: self._state,
            state_mutator=self._set_state,
            action_runner=self._execute_operation,
            on_entry=self._persist_and_notify,
            station_id=station_id
        )

    @classmethod
    async def load(
        cls,
        station_id: int,
        table: TransitionTable,
        repository: StationRepository,
        event_service: StationEventService,
        lock_service: StationLockService,
        operations: OperationRegistry
    ) -> "ReworkStationController":
        """
        Build a controller with its state read from storage.

        Raises:
            UnknownPersistedStateError: If the stored status code is unknown
            PersistenceError: If the record cannot be read
        """
        record = await cls._read_record(repository, station_id)
        state = cls._state_of(record, table, station_id)

        logger.debug(
            f"Controller loaded for station {station_id}: {state.value}"
            + ("" if record else " (no record, initial state)")
        )

        return cls(
            station_id=station_id,
            table=table,
            repository=repository,
            event_service=event_service,
            lock_service=lock_service,
            operations=operations,
            state=state,
            record=record
        )

    # ==================== READS ====================

    @property
    def current_state(self) -> MachineState:
        return self._state

    @property
    def record(self) -> Optional[ReworkStation]:
        """Last record read or written by this controller (None if never persisted)."""
        return self._record

    @property
    def version(self) -> int:
        return self._version

    def info(self) -> MachineInfo:
        return self.table.info()

    def permitted_triggers(self) -> list[MachineTrigger]:
        return self._machine.permitted_triggers()

    def can_fire(self, trigger: MachineTrigger) -> bool:
        return self._machine.can_fire(trigger)

    def diagram(self) -> str:
        """Mermaid state diagram with the current state highlighted."""
        return render_mermaid(
            self.table,
            current_state=self._state,
            title=f"Choco rework station {self.station_id}"
        )

    # ==================== TRIGGER ====================

    async def trigger(
        self,
        trigger: MachineTrigger,
        parameters: Optional[dict[str, Any]] = None
    ) -> TransitionOutcome:
        """
        Fire trigger on the station.

        Flow (under the station lock):
        1. Refresh state and version from storage
        2. Reject if no rule exists for (state, trigger), nothing runs
        3. Exit action, state mutation, entry action, persist + notify

        Args:
            trigger: Trigger to fire
            parameters: Opaque parameters forwarded to operation handlers

        Returns:
            TransitionOutcome: REJECTED, APPLIED, or DEGRADED (with failures)

        Raises:
            StationBusyError: If the station lock could not be acquired
            PersistenceError: If the record cannot be refreshed
            UnknownPersistedStateError: If storage holds an unknown code
        """
        async with self.lock_service.hold(self.station_id):
            await self._refresh()

            previous_state = self._state

            if not self._machine.can_fire(trigger):
                permitted = [t.value for t in self._machine.permitted_triggers()]
                logger.warning(
                    f"Trigger {trigger.value} rejected on station {self.station_id}: "
                    f"not permitted from {previous_state.value} (permitted: {permitted})"
                )
                return TransitionOutcome.rejected(
                    station_id=self.station_id,
                    trigger=trigger,
                    state=previous_state,
                    reason=f"Cannot fire {trigger.value} from state {previous_state.value}"
                )

            context = MachineContext(
                station_id=self.station_id,
                previous_state=previous_state,
                current_state=previous_state,
                trigger=trigger,
                parameters=dict(parameters or {})
            )

            result = await self._machine.fire(trigger, context)

        outcome = TransitionOutcome.applied(
            station_id=self.station_id,
            trigger=trigger,
            previous_state=result.source,
            state=result.destination,
            failures=result.failures
        )

        if outcome.status is OutcomeStatus.DEGRADED:
            logger.warning(
                f"Station {self.station_id}: {result.source.value} → {result.destination.value} "
                f"({trigger.value}) with {len(outcome.failures)} failed side effect(s): "
                f"{[f.action for f in outcome.failures]}"
            )
        else:
            logger.info(
                f"Station {self.station_id}: {result.source.value} → {result.destination.value} "
                f"({trigger.value})"
            )

        return outcome

    # ==================== INTERNALS ====================

    @staticmethod
    async def _read_record(repository: StationRepository, station_id: int) -> Optional[ReworkStation]:
        try:
            return await repository.load_by_id(station_id)
        except RedisError as e:
            raise PersistenceError(station_id, str(e)) from e

    @staticmethod
    def _state_of(
        record: Optional[ReworkStation],
        table: TransitionTable,
        station_id: int
    ) -> MachineState:
        if record is None:
            return table.initial_state
        return decode_state(record.status, station_id=station_id)

    async def _refresh(self) -> None:
        """Re-read the record so decisions are made on the latest stored state."""
        record = await self._read_record(self.repository, self.station_id)
        state = self._state_of(record, self.table, self.station_id)

        if state is not self._state:
            logger.info(
                f"Station {self.station_id} changed since load: "
                f"{self._state.value} → {state.value}"
            )

        self._state = state
        self._record = record
        self._version = record.version if record else 0

    def _set_state(self, state: MachineState) -> None:
        self._state = state

    async def _execute_operation(self, name: str, context: MachineContext) -> None:
        """Run operation name with a handler scoped to this action."""
        try:
            async with self.operations.scope(name) as handler:
                await handler.execute(context)
        except ReworkException:
            raise
        except Exception as e:
            raise OperationHandlerError(name, self.station_id, str(e)) from e

    async def _persist_and_notify(self, context: MachineContext) -> None:
        """
        Universal entry action.

        Writes the new status code (resetting the linked order fields) with a
        compare-and-set on the version observed at refresh, then publishes
        the stored record.

        Raises:
            PersistenceError: If Redis fails
            VersionConflictError: If the record changed since refresh
            NotificationError: If the record was stored but not published
        """
        record = await self._read_record(self.repository, self.station_id)
        if record is None:
            record = ReworkStation(
                id=self.station_id,
                type=config.DEFAULT_STATION_TYPE,
                status=encode_state(context.current_state)
            )

        updated = record.model_copy(update={
            "status": encode_state(context.current_state),
            "ax_item_request_id": None,
            "choco_production_id": None,
            "component": None
        })

        try:
            saved = await self.repository.upsert(updated, expected_version=self._version)
        except RedisError as e:
            raise PersistenceError(self.station_id, str(e)) from e

        self._record = saved
        self._version = saved.version

        topic = self.event_service.state_topic(self.station_id)
        published = await self.event_service.publish(
            topic=topic,
            payload=saved.model_dump(mode="json"),
            qos=config.NOTIFICATION_QOS,
            retain=config.NOTIFICATION_RETAIN
        )
        if not published:
            raise NotificationError(topic)
