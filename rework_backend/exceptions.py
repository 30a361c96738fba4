"""
Custom exception hierarchy for the rework station backend.

Every exception of the system inherits from ReworkException and carries a
stable error_code that the API layer maps to an HTTP status.
"""
from typing import Optional, Any


class ReworkException(Exception):
    """
    Base exception for the whole rework station backend.

    All custom exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        data: Optional[dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.data = data or {}
        super().__init__(self.message)


# ==================== 404 (NOT FOUND) ====================

class StationNotFoundError(ReworkException):
    """No persisted record exists for the station."""

    def __init__(self, station_id: int):
        super().__init__(
            message=f"Choco rework station with Id {station_id} not found",
            error_code="STATION_NOT_FOUND",
            data={"station_id": station_id}
        )


# ==================== 400 / 409 - WORKFLOW RULES ====================

class IllegalTransitionError(ReworkException):
    """
    Trigger is not permitted from the current state.

    Recoverable: reported to the caller as a rejection, no side effects ran.
    """

    def __init__(
        self,
        station_id: Optional[int],
        current_state: str,
        trigger: str,
        permitted_triggers: Optional[list[str]] = None
    ):
        self.station_id = station_id
        self.current_state = current_state
        self.trigger = trigger

        super().__init__(
            message=(
                f"Cannot fire {trigger} from state {current_state}"
                + (f" on station {station_id}" if station_id is not None else "")
            ),
            error_code="INVALID_STATE_TRANSITION",
            data={
                "station_id": station_id,
                "current_state": current_state,
                "attempted_trigger": trigger,
                "permitted_triggers": permitted_triggers or []
            }
        )


class InvalidStatusError(ReworkException):
    """A status code supplied by a client is not a known state code."""

    def __init__(self, status: str, known_codes: list[str]):
        super().__init__(
            message=f"Unknown status '{status}'. Expected one of: {', '.join(known_codes)}",
            error_code="INVALID_STATUS",
            data={"status": status, "known_codes": known_codes}
        )


class StationBusyError(ReworkException):
    """
    Station lock could not be acquired within the wait budget.

    Another request is still running a transition on the same station.
    """

    def __init__(self, station_id: int, waited_seconds: float):
        super().__init__(
            message=(
                f"Station {station_id} is busy with another transition "
                f"(waited {waited_seconds:.1f}s). Try again."
            ),
            error_code="STATION_BUSY",
            data={"station_id": station_id, "waited_seconds": waited_seconds}
        )


class VersionConflictError(ReworkException):
    """
    Optimistic version check failed on write.

    The record was modified by another process between read and write.
    """

    def __init__(self, station_id: int, expected: int, actual: Optional[int]):
        super().__init__(
            message=(
                f"Version conflict on station {station_id}: "
                f"expected {expected}, actual {actual}. "
                "The station was modified by another process."
            ),
            error_code="VERSION_CONFLICT",
            data={
                "station_id": station_id,
                "expected_version": expected,
                "actual_version": actual
            }
        )


# ==================== FATAL - DATA / CONFIGURATION ====================

class UnknownPersistedStateError(ReworkException):
    """
    Stored status code decodes to no known state.

    Fatal at controller construction; the controller is never built with a
    defaulted state.
    """

    def __init__(self, status: Optional[str], station_id: Optional[int] = None):
        super().__init__(
            message=f"Unknown state: {status!r}"
            + (f" persisted for station {station_id}" if station_id is not None else ""),
            error_code="UNKNOWN_PERSISTED_STATE",
            data={"station_id": station_id, "status": status}
        )


class UnknownOperationError(ReworkException):
    """No operation handler is registered under the requested name."""

    def __init__(self, operation: str):
        super().__init__(
            message=f"No operation handler registered for '{operation}'",
            error_code="UNKNOWN_OPERATION",
            data={"operation": operation}
        )


class TransitionTableError(ReworkException):
    """The transition table is malformed (raised while validating it)."""

    def __init__(self, message: str, problems: Optional[list[str]] = None):
        super().__init__(
            message=message,
            error_code="INVALID_TRANSITION_TABLE",
            data={"problems": problems or []}
        )


# ==================== SIDE EFFECTS (captured in outcomes) ====================

class OperationHandlerError(ReworkException):
    """A domain operation failed while a transition was running."""

    def __init__(self, operation: str, station_id: int, details: str):
        super().__init__(
            message=f"Operation '{operation}' failed on station {station_id}: {details}",
            error_code="OPERATION_HANDLER_ERROR",
            data={"operation": operation, "station_id": station_id}
        )


class PersistenceError(ReworkException):
    """Reading or writing the station record failed."""

    def __init__(self, station_id: Optional[int], details: str):
        target = f"station {station_id}" if station_id is not None else "stations"
        super().__init__(
            message=f"Error persisting {target}: {details}",
            error_code="PERSISTENCE_ERROR",
            data={"station_id": station_id}
        )


class NotificationError(ReworkException):
    """Publishing the state change notification failed. Best effort."""

    def __init__(self, topic: str, details: Optional[str] = None):
        message = f"Error publishing state notification to '{topic}'"
        if details:
            message += f": {details}"

        super().__init__(
            message=message,
            error_code="NOTIFICATION_ERROR",
            data={"topic": topic}
        )
